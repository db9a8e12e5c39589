"""
dashboard_service.py — Concurrent, independently failing dashboard reads.
"""

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)


async def load_sections(loaders: dict[str, Callable[[], object]]) -> tuple[dict, list]:
    """
    Run blocking loaders side by side in worker threads.

    Returns (data, errors): a failed section is None in `data` and gets an
    entry in `errors`; the other sections are unaffected.
    """
    names = list(loaders)
    results = await asyncio.gather(
        *(asyncio.to_thread(loaders[name]) for name in names),
        return_exceptions=True,
    )

    data, errors = {}, []
    for name, result in zip(names, results):
        if isinstance(result, Exception):
            logger.error(f"Dashboard section '{name}' failed: {result}")
            data[name] = None
            errors.append({"section": name, "error": str(result)})
        else:
            data[name] = result
    return data, errors
