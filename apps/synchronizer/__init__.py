"""
Synchronizer App - SQL Object Deployment

Responsibilities:
- Load bundled SQL resources (stored procedures, functions, views)
- Read user-defined objects of each kind from the SQL Server catalog
- Drop objects no longer present in the bundle
- Create or alter every bundled object, one batch at a time
- Report created/altered/dropped/error counters per kind and in total

Outputs:
- Log lines per object created, altered, dropped or failed
- Optional JSON report (SYNC_REPORT_PATH)

Usage:
    # Run once and exit
    RUN_ONCE=true python -m apps.synchronizer

    # Re-sync on a cron schedule
    SYNC_SCHEDULE_CRON="0 3 * * *" python -m apps.synchronizer
"""
