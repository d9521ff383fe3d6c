import asyncio
from unittest import IsolatedAsyncioTestCase

from .....core.in_memory import InMemoryProfile
from ..supervisor import ParseSupersededError, ParseSupervisor


class TestParseSupervisor(IsolatedAsyncioTestCase):
    def setUp(self):
        self.supervisor = ParseSupervisor()
        self.committed = []

    async def commit(self, value):
        self.committed.append(value)
        return value

    async def test_run_commits(self):
        async def parse():
            return "parsed"

        assert await self.supervisor.run(parse, self.commit) == "parsed"
        assert self.supervisor.current == "parsed"
        assert not self.supervisor.busy
        assert self.committed == ["parsed"]

    async def test_newer_parse_supersedes(self):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow():
            started.set()
            await release.wait()
            return "old"

        async def fast():
            return "new"

        first = asyncio.ensure_future(self.supervisor.run(slow, self.commit))
        await started.wait()
        assert self.supervisor.busy

        assert await self.supervisor.run(fast, self.commit) == "new"
        with self.assertRaises(ParseSupersededError):
            await first
        assert self.committed == ["new"]
        assert self.supervisor.current == "new"

    async def test_superseded_during_commit_keeps_newer(self):
        committing = asyncio.Event()
        release = asyncio.Event()

        async def parse_old():
            return "old"

        async def slow_commit(value):
            committing.set()
            await release.wait()
            return value

        async def parse_new():
            return "new"

        first = asyncio.ensure_future(self.supervisor.run(parse_old, slow_commit))
        await committing.wait()
        assert await self.supervisor.run(parse_new, self.commit) == "new"
        release.set()
        assert await first == "old"
        assert self.supervisor.current == "new"

    async def test_clear_ignored_while_parsing(self):
        async def parse():
            return "first"

        await self.supervisor.run(parse, self.commit)

        started = asyncio.Event()
        release = asyncio.Event()

        async def slow():
            started.set()
            await release.wait()
            return "second"

        running = asyncio.ensure_future(self.supervisor.run(slow, self.commit))
        await started.wait()
        assert not self.supervisor.clear()
        assert self.supervisor.current == "first"

        release.set()
        assert await running == "second"
        assert self.supervisor.clear()
        assert self.supervisor.current is None

    async def test_parse_error_propagates(self):
        async def broken():
            raise ValueError("bad input")

        with self.assertRaises(ValueError):
            await self.supervisor.run(broken, self.commit)
        assert not self.supervisor.busy
        assert self.committed == []

    def test_bound_per_profile(self):
        profile = InMemoryProfile.test_profile()
        other = InMemoryProfile.test_profile()
        supervisor = ParseSupervisor.for_profile(profile)
        assert ParseSupervisor.for_profile(profile) is supervisor
        assert ParseSupervisor.for_profile(other) is not supervisor
