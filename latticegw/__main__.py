"""Entry point for `python -m latticegw`.

Usage:
    python -m latticegw
"""

from __future__ import annotations

import asyncio

from latticegw.app import main

asyncio.run(main())
