"""
aship Playbook Runner

Orchestrates one ``aship run`` or ``aship exec``: resolve the inventory,
hand it to ansible-playbook (or ``ansible`` for an ad-hoc module), record
host usage on success and always clean up.
"""

import asyncio
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

from loguru import logger

from aship.config.settings import DirectoryLayout
from aship.engine.errors import AshipError
from aship.engine.executor import AnsibleExecutor, OutputCallback
from aship.engine.resolver import DEFAULT_MODE, RunModeResolver
from aship.engine.results import ExecutionResult, RunReport
from aship.hosts.store import HostStore


class PlaybookRunner:
    """
    Runs a playbook or ad-hoc module against registry hosts and/or a user
    inventory.

    Args:
        store: Host registry
        layout: Directory layout (scratch inventories live in its temp dir)
        executor: ansible executor; a default one is created if omitted
    """

    def __init__(
        self,
        store: HostStore,
        layout: DirectoryLayout,
        executor: Optional[AnsibleExecutor] = None,
    ) -> None:
        self.store = store
        self.layout = layout
        self.executor = executor or AnsibleExecutor()

    async def run(
        self,
        playbook: str,
        hosts: Sequence[str] = (),
        inventory: Optional[str] = None,
        mode: str = DEFAULT_MODE.value,
        extra_vars: Optional[Mapping[str, Any]] = None,
        verbosity: int = 0,
        args: Sequence[str] = (),
        on_stdout: Optional[OutputCallback] = None,
        on_stderr: Optional[OutputCallback] = None,
    ) -> RunReport:
        """
        Execute ``playbook``.

        Errors from inventory resolution propagate. A failing playbook is
        reported through the returned RunReport.
        """
        def execute(path: Optional[str]) -> Awaitable[ExecutionResult]:
            return self.executor.execute_playbook(
                playbook,
                inventory=path,
                extra_vars=extra_vars,
                verbosity=verbosity,
                args=args,
                on_stdout=on_stdout,
                on_stderr=on_stderr,
            )

        return await self._run(execute, hosts, inventory, mode)

    async def run_module(
        self,
        module: str,
        module_args: Optional[str] = None,
        pattern: str = "all",
        hosts: Sequence[str] = (),
        inventory: Optional[str] = None,
        mode: str = DEFAULT_MODE.value,
        extra_vars: Optional[Mapping[str, Any]] = None,
        verbosity: int = 0,
        args: Sequence[str] = (),
        on_stdout: Optional[OutputCallback] = None,
        on_stderr: Optional[OutputCallback] = None,
    ) -> RunReport:
        """Execute one ad-hoc ``module`` against ``pattern``."""
        def execute(path: Optional[str]) -> Awaitable[ExecutionResult]:
            return self.executor.execute_module(
                pattern,
                module,
                module_args,
                inventory=path,
                extra_vars=extra_vars,
                verbosity=verbosity,
                args=args,
                on_stdout=on_stdout,
                on_stderr=on_stderr,
            )

        return await self._run(execute, hosts, inventory, mode)

    async def _run(
        self,
        execute: Callable[[Optional[str]], Awaitable[ExecutionResult]],
        hosts: Sequence[str],
        inventory: Optional[str],
        mode: str,
    ) -> RunReport:
        resolver = RunModeResolver(self.store, self.layout.inventories_dir)
        try:
            resolved = resolver.resolve(hosts, inventory, mode)
            if resolved.path:
                logger.info(f"Using inventory {resolved.path} ({resolved.strategy})")

            result = await execute(resolved.path)

            report = RunReport(
                result=result,
                inventory_path=resolved.path,
                mode=resolved.strategy,
                hosts=list(hosts),
            )
            if result.success and hosts:
                report.usage_recorded = self._record_usage(hosts)
            return report
        finally:
            resolver.cleanup()

    def _record_usage(self, hosts: Sequence[str]) -> bool:
        ok = True
        for name in hosts:
            try:
                self.store.record_usage(name)
            except (OSError, AshipError) as e:
                logger.warning(f"Failed to update usage for {name}: {e}")
                ok = False
        return ok

    def run_sync(self, playbook: str, **kwargs: Any) -> RunReport:
        """Synchronous wrapper around run()."""
        return asyncio.run(self.run(playbook, **kwargs))

    def run_module_sync(self, module: str, **kwargs: Any) -> RunReport:
        """Synchronous wrapper around run_module()."""
        return asyncio.run(self.run_module(module, **kwargs))
