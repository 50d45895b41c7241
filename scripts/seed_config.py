#!/usr/bin/env python3
"""Write the default config keys that are missing from the database."""

import asyncio

from app.config import settings
from app.services.container import build_services


async def seed_config() -> None:
    services = build_services(settings)
    try:
        seeded = await services.config.initialize_defaults()
    finally:
        await services.close()

    if seeded:
        for key in seeded:
            print(f"Seeded: {key}")
    else:
        print("All default config keys already present")


if __name__ == "__main__":
    asyncio.run(seed_config())
