"""Promote drafts saved before submission history existed into submissions."""

import asyncio

from ktree.db import base
from ktree.services.submissions import SubmissionService


async def migrate_legacy_drafts() -> int:
    """Run the draft promotion once against the configured database."""
    if base.engine is None:
        await base.init_db()

    assert base.AsyncSessionLocal is not None
    async with base.AsyncSessionLocal() as session:
        migrated = await SubmissionService(session).migrate_legacy_drafts()

    await base.close_db()
    return migrated


def main() -> None:
    """Main entry point for the draft migration."""
    print("Promoting legacy drafts into submission history...")
    migrated = asyncio.run(migrate_legacy_drafts())
    if migrated:
        print(f"Created {migrated} submissions from existing drafts")
    else:
        print("Nothing to migrate: every draft already has history")


if __name__ == "__main__":
    main()
