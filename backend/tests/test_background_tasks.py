from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

from tabsync.db.repositories import UserRepository
from tabsync.models.user import User, UserStatus
from tabsync.services.background_tasks import BackgroundTaskManager


def _user(username: str, status: UserStatus, age: timedelta) -> User:
    return User(
        username=username,
        email=f"{username}@example.com",
        totp_secret="JBSWY3DPEHPK3PXP",
        user_status=status,
        created_at=datetime.now() - age
    )


def test_sweep_deletes_only_stale_unverified_accounts(run) -> None:
    async def scenario():
        await UserRepository.create(_user("stale", UserStatus.INIT, timedelta(hours=2)))
        await UserRepository.create(_user("fresh", UserStatus.INIT, timedelta(minutes=1)))
        await UserRepository.create(_user("verified", UserStatus.VERIFIED, timedelta(days=3)))

        deleted = await BackgroundTaskManager(retention_minutes=30).cleanup_unverified_users()
        remaining = [
            name for name in ("stale", "fresh", "verified")
            if await UserRepository.find_by_username(name)
        ]
        return deleted, remaining

    deleted, remaining = run(scenario())

    assert deleted == 1
    assert remaining == ["fresh", "verified"]


def test_start_and_stop() -> None:
    async def scenario():
        manager = BackgroundTaskManager(cleanup_interval=3600)
        await manager.start()
        running = await manager.get_task_status()
        await manager.stop()
        stopped = await manager.get_task_status()
        return running, stopped

    running, stopped = asyncio.run(scenario())

    assert running["is_running"]
    assert running["tasks"]["unverified_cleanup"]["running"]
    assert stopped == {"is_running": False, "tasks": {}}
