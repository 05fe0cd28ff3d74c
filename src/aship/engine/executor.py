"""
ansible-playbook and ad-hoc ansible invocation.

The executor assembles the command line, runs it with asyncio and streams
stdout / stderr to optional callbacks as data arrives. A non-zero exit is
returned as a failed ExecutionResult, never raised.
"""

import asyncio
import codecs
import json
import os
import shutil
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import yaml
from loguru import logger

from aship.engine.results import ExecutionResult
from aship.inventory.generator import SSH_COMMON_ARGS


OutputCallback = Callable[[str], None]

ANSIBLE_ENV = {
    "ANSIBLE_HOST_KEY_CHECKING": "False",
    "ANSIBLE_SSH_ARGS": SSH_COMMON_ARGS,
}

# Options consumed by aship itself and never forwarded to ansible-playbook
ASHIP_ONLY_OPTIONS = frozenset({
    "--hosts", "-H",
    "--inventory-mode", "-m",
    "--project",
    "--yes", "-y",
    "--json",
})

# Flags that take a value in the following argument
VALUE_OPTIONS = frozenset({
    "-i", "--inventory",
    "-l", "--limit",
    "-t", "--tags",
    "--skip-tags",
    "-e", "--extra-vars",
    "-f", "--forks",
    "-u", "--user",
    "--private-key", "--key-file",
    "--start-at-task",
    "-c", "--connection",
    "-T", "--timeout",
    "--become-user",
    "--become-method",
    "--vault-password-file",
    "--vault-id",
    "-M", "--module-path",
    "-m", "--module-name",
    "-a", "--args",
})

# Options that may legitimately appear more than once
REPEATABLE_OPTIONS = frozenset({"-e", "--extra-vars", "--vault-id"})

CHUNK_SIZE = 4096


def parse_extra_vars(items: Sequence[str]) -> Dict[str, Any]:
    """
    Parse ``-e`` values.

    Each item is one of ``@file.yml``, an inline YAML/JSON mapping, or
    comma-separated ``key=value`` pairs. Later items override earlier ones.
    """
    result: Dict[str, Any] = {}
    for item in items:
        item = item.strip()
        if not item:
            continue
        if item.startswith("@"):
            content = Path(item[1:]).read_text(encoding="utf-8")
            data = yaml.safe_load(content) or {}
            if isinstance(data, dict):
                result.update(data)
        elif item.startswith("{"):
            data = yaml.safe_load(item)
            if isinstance(data, dict):
                result.update(data)
        elif "=" in item:
            for pair in item.split(","):
                key, sep, value = pair.partition("=")
                if sep and key.strip():
                    result[key.strip()] = value.strip()
        else:
            logger.warning(f"Ignoring extra var without '=': {item}")
    return result


def filter_aship_args(args: Sequence[str]) -> List[str]:
    """Drop options that only mean something to aship."""
    filtered: List[str] = []
    skip_value = False
    for arg in args:
        if skip_value:
            skip_value = False
            continue
        flag = arg.split("=", 1)[0]
        if flag in ASHIP_ONLY_OPTIONS:
            # --inventory-mode and --hosts carry a value unless given as --opt=value
            skip_value = "=" not in arg and flag not in ("--yes", "-y", "--json")
            continue
        filtered.append(arg)
    return filtered


def dedupe_args(args: Sequence[str]) -> List[str]:
    """
    Remove repeated options, keeping the last occurrence.

    Value-taking options are treated together with their value. Repeatable
    options and positional arguments are kept as they are.
    """
    groups: List[List[str]] = []
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in VALUE_OPTIONS and i + 1 < len(args):
            groups.append([arg, args[i + 1]])
            i += 2
        else:
            groups.append([arg])
            i += 1

    last_index: Dict[str, int] = {}
    for index, group in enumerate(groups):
        flag = group[0].split("=", 1)[0]
        if flag.startswith("-") and flag not in REPEATABLE_OPTIONS:
            last_index[flag] = index

    result: List[str] = []
    for index, group in enumerate(groups):
        flag = group[0].split("=", 1)[0]
        if flag in last_index and last_index[flag] != index:
            continue
        result.extend(group)
    return result


def _common_args(
    inventory: Optional[str],
    verbosity: int,
    extra_vars: Optional[Mapping[str, Any]],
    become: bool,
    args: Sequence[str],
    head: Sequence[str] = (),
) -> List[str]:
    argv: List[str] = []
    if inventory:
        argv += ["-i", inventory]
    if verbosity > 0:
        argv.append("-" + "v" * min(verbosity, 4))
    argv += head
    if extra_vars:
        argv += ["--extra-vars", json.dumps(dict(extra_vars))]
    if become:
        argv.append("--become")
    argv += filter_aship_args(args)
    return dedupe_args(argv)


def build_playbook_args(
    playbook: str,
    inventory: Optional[str] = None,
    extra_vars: Optional[Mapping[str, Any]] = None,
    verbosity: int = 0,
    args: Sequence[str] = (),
    become: bool = True,
) -> List[str]:
    """Assemble the ansible-playbook argument list (without the binary)."""
    argv = _common_args(inventory, verbosity, extra_vars, become, args)
    argv.append(playbook)
    return argv


def build_module_args(
    pattern: str,
    module: str,
    module_args: Optional[str] = None,
    inventory: Optional[str] = None,
    extra_vars: Optional[Mapping[str, Any]] = None,
    verbosity: int = 0,
    args: Sequence[str] = (),
    become: bool = True,
) -> List[str]:
    """Assemble the ad-hoc ``ansible`` argument list; the host pattern goes last."""
    head = ["-m", module]
    if module_args:
        head += ["-a", module_args]
    argv = _common_args(inventory, verbosity, extra_vars, become, args, head)
    argv.append(pattern)
    return argv


class AnsibleExecutor:
    """
    Runs ansible-playbook, or ``ansible`` for ad-hoc modules, as a child
    process.

    Args:
        binary: ansible-playbook executable name or path
        env: Extra environment variables layered over os.environ
        cwd: Working directory for the child process
        module_binary: ansible executable name or path
    """

    def __init__(
        self,
        binary: str = "ansible-playbook",
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[str] = None,
        module_binary: str = "ansible",
    ) -> None:
        self.binary = binary
        self.module_binary = module_binary
        self.env = dict(ANSIBLE_ENV)
        if env:
            self.env.update(env)
        self.cwd = cwd

    async def execute_playbook(
        self,
        playbook: str,
        inventory: Optional[str] = None,
        extra_vars: Optional[Mapping[str, Any]] = None,
        verbosity: int = 0,
        args: Sequence[str] = (),
        on_stdout: Optional[OutputCallback] = None,
        on_stderr: Optional[OutputCallback] = None,
    ) -> ExecutionResult:
        """Run one playbook and return its structured result."""
        argv = build_playbook_args(playbook, inventory, extra_vars, verbosity, args)
        return await self.execute(argv, on_stdout=on_stdout, on_stderr=on_stderr)

    async def execute_module(
        self,
        pattern: str,
        module: str,
        module_args: Optional[str] = None,
        inventory: Optional[str] = None,
        extra_vars: Optional[Mapping[str, Any]] = None,
        verbosity: int = 0,
        args: Sequence[str] = (),
        on_stdout: Optional[OutputCallback] = None,
        on_stderr: Optional[OutputCallback] = None,
    ) -> ExecutionResult:
        """Run one ad-hoc module against ``pattern``."""
        argv = build_module_args(
            pattern, module, module_args, inventory, extra_vars, verbosity, args
        )
        return await self.execute(
            argv, on_stdout=on_stdout, on_stderr=on_stderr, binary=self.module_binary
        )

    async def execute(
        self,
        argv: Sequence[str],
        on_stdout: Optional[OutputCallback] = None,
        on_stderr: Optional[OutputCallback] = None,
        binary: Optional[str] = None,
    ) -> ExecutionResult:
        binary = binary or self.binary
        start = time.monotonic()
        executable = shutil.which(binary) or binary
        logger.debug(f"Executing: {binary} {' '.join(argv)}")

        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.cwd,
                env={**os.environ, **self.env},
            )
        except (FileNotFoundError, PermissionError) as e:
            message = f"Cannot execute {binary}: {e}"
            if on_stderr:
                on_stderr(message + "\n")
            return ExecutionResult(
                success=False,
                exit_code=127,
                stderr=message,
                execution_time=time.monotonic() - start,
            )

        stdout_parts: List[str] = []
        stderr_parts: List[str] = []
        await asyncio.gather(
            _pump(process.stdout, stdout_parts, on_stdout),
            _pump(process.stderr, stderr_parts, on_stderr),
        )
        exit_code = await process.wait()

        return ExecutionResult(
            success=exit_code == 0,
            exit_code=exit_code,
            stdout="".join(stdout_parts),
            stderr="".join(stderr_parts),
            execution_time=time.monotonic() - start,
        )


async def _pump(
    stream: Optional[asyncio.StreamReader],
    sink: List[str],
    callback: Optional[OutputCallback],
) -> None:
    """Copy a child pipe into ``sink`` chunk by chunk, notifying ``callback``."""
    if stream is None:
        return
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        chunk = await stream.read(CHUNK_SIZE)
        text = decoder.decode(chunk, final=not chunk)
        if not chunk:
            if text:
                sink.append(text)
            break
        if not text:
            continue
        sink.append(text)
        if callback:
            callback(text)
