"""
Tests for ansible-playbook argument assembly and process execution.
"""

import json
import os
import stat

import pytest

from aship.engine.executor import (
    AnsibleExecutor,
    build_module_args,
    build_playbook_args,
    dedupe_args,
    filter_aship_args,
    parse_extra_vars,
)
from aship.platform import IS_WINDOWS


class TestParseExtraVars:
    """-e value parsing."""

    def test_key_value_pairs(self):
        assert parse_extra_vars(["a=1,b=two", "c=3"]) == {"a": "1", "b": "two", "c": "3"}

    def test_later_values_win(self):
        assert parse_extra_vars(["a=1", "a=2"]) == {"a": "2"}

    def test_inline_mapping(self):
        assert parse_extra_vars(['{"port": 8080, "debug": true}']) == {"port": 8080, "debug": True}

    def test_file_reference(self, tmp_path):
        path = tmp_path / "vars.yml"
        path.write_text("env: prod\nreplicas: 3\n")
        assert parse_extra_vars([f"@{path}"]) == {"env": "prod", "replicas": 3}

    def test_value_may_contain_equals(self):
        assert parse_extra_vars(["query=a=b"]) == {"query": "a=b"}

    def test_garbage_ignored(self):
        assert parse_extra_vars(["", "novalue"]) == {}


class TestArgs:
    """Command-line assembly."""

    def test_filter_aship_args(self):
        args = ["-H", "web-1", "--limit", "x", "--yes", "-m=merge", "--project", "p.yml"]
        assert filter_aship_args(args) == ["--limit", "x"]

    def test_dedupe_keeps_last(self):
        args = ["--limit", "a", "--check", "--limit", "b", "--check"]
        assert dedupe_args(args) == ["--limit", "b", "--check"]

    def test_dedupe_keeps_repeatable(self):
        args = ["-e", "a=1", "-e", "b=2"]
        assert dedupe_args(args) == args

    def test_build_args(self):
        argv = build_playbook_args(
            "site.yml",
            inventory="inv.yml",
            extra_vars={"port": 80},
            verbosity=2,
            args=["--tags", "web", "-H", "web-1"],
        )
        assert argv == [
            "-i", "inv.yml",
            "-vv",
            "--extra-vars", json.dumps({"port": 80}),
            "--become",
            "--tags", "web",
            "site.yml",
        ]

    def test_user_inventory_overrides(self):
        argv = build_playbook_args("site.yml", inventory="a.yml", args=["-i", "b.yml"])
        assert argv == ["--become", "-i", "b.yml", "site.yml"]

    def test_verbosity_capped(self):
        argv = build_playbook_args("site.yml", verbosity=9, become=False)
        assert argv == ["-vvvv", "site.yml"]



    def test_build_module_args(self):
        argv = build_module_args(
            "web",
            "shell",
            module_args="uptime",
            inventory="inv.yml",
            extra_vars={"port": 80},
            verbosity=1,
            args=["--limit", "web-1", "-H", "web-1"],
        )
        assert argv == [
            "-i", "inv.yml",
            "-v",
            "-m", "shell",
            "-a", "uptime",
            "--extra-vars", json.dumps({"port": 80}),
            "--become",
            "--limit", "web-1",
            "web",
        ]

    def test_module_without_args(self):
        assert build_module_args("all", "ping", become=False) == ["-m", "ping", "all"]

    def test_user_module_args_override(self):
        argv = build_module_args("all", "command", module_args="id", args=["-a", "uptime"])
        assert argv == ["-m", "command", "--become", "-a", "uptime", "all"]


def _script(tmp_path, body):
    path = tmp_path / "fake-ansible-playbook"
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return str(path)


@pytest.mark.skipif(IS_WINDOWS, reason="requires a POSIX shell")
class TestAnsibleExecutor:
    """Running a child process."""

    @pytest.mark.asyncio
    async def test_captures_and_streams_output(self, tmp_path):
        binary = _script(tmp_path, 'echo "out-$1"\necho "err" >&2\nexit 3\n')
        executor = AnsibleExecutor(binary=binary)
        streamed = []

        result = await executor.execute(["hello"], on_stdout=streamed.append)

        assert not result.success
        assert result.exit_code == 3
        assert result.stdout == "out-hello\n"
        assert result.stderr == "err\n"
        assert "".join(streamed) == "out-hello\n"

    @pytest.mark.asyncio
    async def test_ansible_environment(self, tmp_path):
        binary = _script(tmp_path, 'echo "$ANSIBLE_HOST_KEY_CHECKING:$EXTRA"\n')
        executor = AnsibleExecutor(binary=binary, env={"EXTRA": "yes"})

        result = await executor.execute([])

        assert result.success
        assert result.stdout.strip() == "False:yes"

    @pytest.mark.asyncio
    async def test_execute_playbook_passes_args(self, tmp_path):
        binary = _script(tmp_path, 'echo "$@"\n')
        executor = AnsibleExecutor(binary=binary)

        result = await executor.execute_playbook("site.yml", inventory="inv.yml", args=["--check"])

        assert result.stdout.strip() == "-i inv.yml --become --check site.yml"

    @pytest.mark.asyncio
    async def test_missing_binary(self, tmp_path):
        executor = AnsibleExecutor(binary=os.path.join(str(tmp_path), "does-not-exist"))
        errors = []

        result = await executor.execute(["site.yml"], on_stderr=errors.append)

        assert result.exit_code == 127
        assert not result.success
        assert "Cannot execute" in result.stderr
        assert errors

    @pytest.mark.asyncio
    async def test_execute_module_uses_module_binary(self, tmp_path):
        binary = _script(tmp_path, 'echo "$ANSIBLE_HOST_KEY_CHECKING $@"\n')
        executor = AnsibleExecutor(binary="does-not-exist", module_binary=binary)

        result = await executor.execute_module("all", "ping", inventory="inv.yml")

        assert result.success
        assert result.stdout.strip() == "False -i inv.yml -m ping --become all"

    @pytest.mark.asyncio
    async def test_missing_module_binary(self, tmp_path):
        missing = os.path.join(str(tmp_path), "no-ansible")
        executor = AnsibleExecutor(module_binary=missing)

        result = await executor.execute_module("all", "ping")

        assert result.exit_code == 127
        assert f"Cannot execute {missing}" in result.stderr
