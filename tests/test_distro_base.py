# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT

"""Tests for the Distro lifecycle contract (readiness, launch, teardown)."""

import logging

import pytest

from distroctl.distro.base import CommandResult, shell_argv
from distroctl.errors import DistroError

READINESS = "systemctl --user show-environment"
SYSTEM_STATE = "systemctl is-system-running"


class TestCommandResult:
    def test_ok(self):
        assert CommandResult(0).ok
        assert not CommandResult(3).ok

    def test_output_combines_streams(self):
        assert CommandResult(1, "out\n", "err\n").output == "out\nerr\n"


class TestShellArgv:
    def test_string_runs_through_shell(self):
        assert shell_argv("systemctl --user status") == ["sh", "-c", "systemctl --user status"]

    def test_list_is_kept(self):
        assert shell_argv(["loginctl", "enable-linger", "root"]) == [
            "loginctl",
            "enable-linger",
            "root",
        ]


class TestLaunch:
    def test_returns_exit_code(self, make_distro, exit_codes):
        distro = make_distro({"systemctl --user status": exit_codes(3)})
        assert distro.launch("systemctl --user status") == 3

    def test_passes_user(self, make_distro):
        distro = make_distro()
        distro.launch("id", user="alice")
        assert distro.calls == [("id", "alice", None)]


class TestBoot:
    def test_boot_is_idempotent(self, make_distro):
        distro = make_distro()
        distro.boot()
        distro.boot()
        assert distro.boot_count == 1

    def test_boot_again_after_uninstall(self, make_distro):
        distro = make_distro()
        distro.boot()
        distro.uninstall()
        distro.boot()
        assert distro.boot_count == 2


class TestWaitForUserDaemon:
    def test_ready_after_retries(self, make_distro, exit_codes):
        distro = make_distro({READINESS: exit_codes(1, 1, 0)})
        assert distro.wait_for_user_daemon(timeout=5) is True
        probes = [call for call in distro.calls if call[0] == READINESS]
        assert len(probes) == 3

    def test_probe_uses_probe_timeout(self, make_distro, config):
        distro = make_distro()
        distro.wait_for_user_daemon()
        assert distro.calls[0] == (READINESS, None, config.probe_timeout)

    def test_times_out(self, make_distro, exit_codes):
        distro = make_distro({READINESS: exit_codes(1)})
        assert distro.wait_for_user_daemon(timeout=0.05) is False

    def test_defaults_to_config_timeout(self, make_distro, exit_codes, config, monkeypatch):
        seen = {}

        def fake_wait_until(predicate, timeout, interval, description):
            seen["timeout"] = timeout
            seen["interval"] = interval
            return True

        monkeypatch.setattr("distroctl.distro.base.wait_until", fake_wait_until)
        make_distro().wait_for_user_daemon()
        assert seen == {"timeout": config.ready_timeout, "interval": config.poll_interval}

    def test_timeout_logs_diagnostics(self, make_distro, exit_codes, caplog):
        distro = make_distro(
            {
                READINESS: exit_codes(1),
                "systemctl --failed --no-pager": [CommandResult(0, "0 loaded units listed.\n")],
            }
        )
        with caplog.at_level(logging.WARNING, logger="distroctl"):
            assert distro.wait_for_user_daemon(timeout=0.05) is False

        assert "not ready after 0.05s" in caplog.text
        assert "0 loaded units listed." in caplog.text

    def test_timeout_without_diagnostics(self, make_distro, exit_codes, config, caplog):
        config.collect_diagnostics = False
        distro = make_distro({READINESS: exit_codes(1)})
        with caplog.at_level(logging.WARNING, logger="distroctl"):
            distro.wait_for_user_daemon(timeout=0.05)

        assert "Diagnostics" not in caplog.text
        assert all(call[0] == READINESS for call in distro.calls)

    def test_prepare_retried_until_it_succeeds(self, make_distro):
        distro = make_distro()
        attempts = []

        def prepare():
            attempts.append(1)
            return len(attempts) >= 3

        distro._prepare_user_session = prepare
        assert distro.wait_for_user_daemon(timeout=5) is True
        assert len(attempts) == 3
        # Probe only runs once the session is prepared
        assert [call[0] for call in distro.calls] == [READINESS]


class TestWaitForSystem:
    @pytest.mark.parametrize("state", ["running", "degraded"])
    def test_ready_states(self, make_distro, state):
        distro = make_distro({SYSTEM_STATE: [CommandResult(0, f"{state}\n")]})
        assert distro.wait_for_system(timeout=1) is True
        assert distro.calls[0][1] == "root"

    def test_still_starting(self, make_distro):
        distro = make_distro({SYSTEM_STATE: [CommandResult(1, "starting\n")]})
        assert distro.wait_for_system(timeout=0.05) is False


class TestContextManager:
    def test_boots_and_uninstalls(self, make_distro):
        distro = make_distro()
        with distro as booted:
            assert booted is distro
            assert distro.boot_count == 1
            assert distro.uninstall_count == 0
        assert distro.uninstall_count == 1

    def test_uninstalls_when_body_fails(self, make_distro):
        distro = make_distro()
        with pytest.raises(AssertionError):
            with distro:
                assert distro.launch("false") == 1, "status command failed"
        assert distro.uninstall_count == 1

    def test_uninstalls_when_boot_fails(self, make_distro):
        distro = make_distro()
        distro.fail_boot = DistroError("import failed")
        with pytest.raises(DistroError, match="import failed"):
            with distro:
                pytest.fail("body must not run")
        assert distro.uninstall_count == 1

    def test_boot_error_wins_over_cleanup_error(self, make_distro):
        distro = make_distro()
        distro.fail_boot = DistroError("import failed")

        def broken_uninstall():
            raise DistroError("unregister failed")

        distro.uninstall = broken_uninstall
        with pytest.raises(DistroError, match="import failed"):
            with distro:
                pass

    def test_refused_boot_leaves_existing_instance(self, make_distro):
        distro = make_distro()
        distro.creates = False
        distro.fail_boot = DistroError("already exists")

        with pytest.raises(DistroError, match="already exists"):
            with distro:
                pytest.fail("body must not run")

        assert distro.uninstall_count == 0
        assert not distro.owned


class TestOwnership:
    def test_not_owned_before_boot(self, make_distro):
        assert not make_distro().owned

    def test_owned_after_boot_and_released_by_uninstall(self, make_distro):
        distro = make_distro()
        distro.creates = False

        distro.start()
        assert distro.owned

        distro.uninstall()
        assert not distro.owned

    def test_start_returns_distro(self, make_distro):
        distro = make_distro()
        assert distro.start() is distro
        assert distro.uninstall_count == 0


class TestDiagnostics:
    def test_sections(self, make_distro):
        distro = make_distro(
            {"journalctl -b --no-pager -n 100": [CommandResult(0, "systemd[1]: Started.\n")]}
        )
        report = distro.collect_diagnostics()
        assert "== Failed system units ==" in report
        assert "== Failed user units ==" in report
        assert "systemd[1]: Started." in report

    def test_empty_output_reports_exit_code(self, make_distro):
        distro = make_distro({"systemctl --user --failed --no-pager": [CommandResult(1)]})
        assert "(no output, exit 1)" in distro.collect_diagnostics()

    def test_unreachable_backend_is_reported(self, make_distro):
        distro = make_distro()

        def broken_run(command, user=None, timeout=None):
            raise DistroError("container gone")

        distro.run = broken_run
        assert "(unavailable: container gone)" in distro.collect_diagnostics()
