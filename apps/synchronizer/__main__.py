"""
Synchronizer Module Entry Point

Allows execution via: python -m apps.synchronizer

Delegates to the runner for all execution modes (scheduled and RUN_ONCE).
"""

import asyncio

from apps.synchronizer.runner import main

if __name__ == "__main__":
    asyncio.run(main())
