"""Unit tests for the cron fallback service manager."""

import subprocess
import sys
from pathlib import Path

import pytest

from checkpoint.exceptions import InstallFailedError, TemplateError, ToggleFailedError
from checkpoint.models.service import ServiceStatus, ServiceType
from checkpoint.models.settings import DaemonSettings
from checkpoint.service.cron import CronServiceManager

OTHER_JOB = "0 0 * * * /usr/bin/rotate-logs"


@pytest.fixture
def manager(settings: DaemonSettings, fake_runner) -> CronServiceManager:
    """Create a cron manager against the fake runner."""
    return CronServiceManager(settings, fake_runner)


def _lines(fake_runner) -> list[str]:
    return (fake_runner.crontab or "").splitlines()


class TestCronInstall:
    """Tests for CronServiceManager.install."""

    def test_install_writes_tagged_line(self, manager, settings, fake_runner, project_dir, make_descriptor) -> None:
        """install should add one line ending in the service marker."""
        assert manager.install(make_descriptor("myproj-watcher"))

        assert _lines(fake_runner) == [
            f"*/5 * * * * cd {project_dir} && PATH={settings.env_path} "
            f"/opt/checkpoint/bin/backup-watcher.sh >> {settings.log_dir}/cron-myproj-watcher.log 2>&1 "
            "# checkpoint:myproj-watcher"
        ]
        assert settings.log_dir.is_dir()

    def test_reinstall_keeps_single_line(self, manager, fake_runner, make_descriptor) -> None:
        """Installing twice should leave exactly one line for the service."""
        descriptor = make_descriptor("myproj", ServiceType.DAEMON)
        manager.install(descriptor)
        manager.install(descriptor)

        lines = _lines(fake_runner)
        assert len(lines) == 1
        assert lines[0].endswith("# checkpoint:myproj")

    def test_preserves_other_lines(self, manager, fake_runner, make_descriptor) -> None:
        """Unrelated crontab lines should survive an install."""
        fake_runner.crontab = f"{OTHER_JOB}\n"
        manager.install(make_descriptor("myproj"))

        lines = _lines(fake_runner)
        assert lines[0] == OTHER_JOB
        assert lines[1].endswith("# checkpoint:myproj")

    def test_similar_names_do_not_collide(self, manager, fake_runner, make_descriptor) -> None:
        """Reinstalling 'myproj' must not remove 'myproj-watcher'."""
        manager.install(make_descriptor("myproj-watcher"))
        manager.install(make_descriptor("myproj", ServiceType.DAEMON))
        manager.install(make_descriptor("myproj", ServiceType.DAEMON))

        assert sorted(manager.installed_names()) == ["myproj", "myproj-watcher"]
        assert len(_lines(fake_runner)) == 2

    @pytest.mark.parametrize(
        "service_type,schedule",
        [
            (ServiceType.WATCHER, "*/5 * * * *"),
            (ServiceType.DAEMON, "0 * * * *"),
            (ServiceType.WATCHDOG, "* * * * *"),
        ],
    )
    def test_schedule_per_type(self, manager, fake_runner, make_descriptor, service_type, schedule) -> None:
        """Each service type should get its own default schedule."""
        manager.install(make_descriptor("job", service_type))
        assert _lines(fake_runner)[0].startswith(f"{schedule} cd ")

    def test_custom_schedule(self, home: Path, fake_runner, make_descriptor) -> None:
        """Configured schedules should override the defaults."""
        settings = DaemonSettings(home=home, cron_schedules={ServiceType.DAEMON: "30 2 * * *"})
        CronServiceManager(settings, fake_runner).install(make_descriptor("job", ServiceType.DAEMON))
        assert _lines(fake_runner)[0].startswith("30 2 * * * cd ")

    def test_values_are_shell_quoted(self, manager, fake_runner, make_descriptor) -> None:
        """Spaces should be quoted and % escaped for cron."""
        descriptor = make_descriptor("job").model_copy(
            update={"script_path": Path("/opt/my tools/50%/run.sh")}
        )
        manager.install(descriptor)
        assert r"'/opt/my tools/50\%/run.sh'" in _lines(fake_runner)[0]

    def test_unreadable_crontab_refuses(self, manager, fake_runner, make_descriptor) -> None:
        """An unexpected crontab -l failure must not lead to an overwrite."""
        fake_runner.crontab = f"{OTHER_JOB}\n"
        fake_runner.fail("crontab", "-l", stderr="crontab: permission denied")

        with pytest.raises(InstallFailedError):
            manager.install(make_descriptor("job"))
        assert fake_runner.crontab == f"{OTHER_JOB}\n"

    def test_multiline_template_fails(self, home: Path, tmp_path: Path, fake_runner, make_descriptor) -> None:
        """A template rendering to more than one line should be rejected."""
        templates = tmp_path / "templates"
        templates.mkdir()
        (templates / "cron-service.crontab").write_text(
            "SCHEDULE_PLACEHOLDER SCRIPT_PATH_PLACEHOLDER\nSCHEDULE_PLACEHOLDER true\n"
        )
        manager = CronServiceManager(DaemonSettings(home=home, template_dir=templates), fake_runner)

        with pytest.raises(TemplateError):
            manager.install(make_descriptor("job"))
        assert fake_runner.crontab is None


class TestCronUninstall:
    """Tests for CronServiceManager.uninstall."""

    def test_uninstall_keeps_other_lines(self, manager, fake_runner, make_descriptor) -> None:
        """uninstall should drop only the tagged line."""
        fake_runner.crontab = f"{OTHER_JOB}\n"
        manager.install(make_descriptor("job"))

        assert manager.uninstall("job")
        assert _lines(fake_runner) == [OTHER_JOB]

    def test_uninstall_last_line_removes_crontab(self, manager, fake_runner, make_descriptor) -> None:
        """When nothing remains the crontab should be removed."""
        manager.install(make_descriptor("job"))

        assert manager.uninstall("job")
        assert ["crontab", "-r"] in fake_runner.calls
        assert fake_runner.crontab is None
        assert manager.status("job") is ServiceStatus.STOPPED

    def test_uninstall_absent_is_noop(self, manager, fake_runner) -> None:
        """Uninstalling an absent entry should only read the crontab."""
        assert manager.uninstall("ghost")
        assert fake_runner.calls == [["crontab", "-l"]]

    def test_uninstall_unreadable_fails(self, manager, fake_runner) -> None:
        """An unreadable crontab should be reported as a failure."""
        fake_runner.fail("crontab", "-l", stderr="crontab: permission denied")
        assert not manager.uninstall("job")


class TestCronLifecycle:
    """Tests for start/stop/restart/status/list."""

    def test_status_scheduled_without_pid(self, manager, make_descriptor) -> None:
        """An installed line with no live run should report scheduled."""
        manager.install(make_descriptor("job"))
        assert manager.status("job") is ServiceStatus.SCHEDULED

    def test_status_stopped_when_absent(self, manager) -> None:
        """A service without a line should report stopped."""
        assert manager.status("job") is ServiceStatus.STOPPED

    def test_start_is_noop(self, manager, fake_runner, make_descriptor) -> None:
        """start should not rewrite the crontab."""
        manager.install(make_descriptor("job"))
        fake_runner.calls.clear()

        assert manager.start("job")
        assert ["crontab", "-"] not in [call[:2] for call in fake_runner.calls]

    def test_stop_terminates_running_job(self, manager, settings, make_descriptor) -> None:
        """stop should SIGTERM the PID-file process and remove the PID file."""
        manager.install(make_descriptor("job"))
        proc = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(30)"])
        try:
            pid_file = settings.pid_file("job")
            pid_file.write_text(f"{proc.pid}\n")
            assert manager.status("job") is ServiceStatus.RUNNING

            assert manager.stop("job")
            assert proc.wait(timeout=10) != 0
            assert not pid_file.exists()
            assert manager.status("job") is ServiceStatus.SCHEDULED
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.wait()

    def test_stop_without_run_succeeds(self, manager, settings, make_descriptor) -> None:
        """stop with only a stale PID file should clean it up."""
        manager.install(make_descriptor("job"))
        pid_file = settings.pid_file("job")
        pid_file.write_text("not a pid")

        assert manager.stop("job")
        assert not pid_file.exists()

    def test_restart(self, manager, make_descriptor) -> None:
        """restart should succeed for an installed entry."""
        manager.install(make_descriptor("job"))
        assert manager.restart("job")
        assert manager.status("job") is ServiceStatus.SCHEDULED

    @pytest.mark.parametrize("action", ["start", "stop", "restart"])
    def test_toggle_without_line_fails(self, manager, action: str) -> None:
        """Toggling an absent entry should raise ToggleFailedError."""
        with pytest.raises(ToggleFailedError):
            getattr(manager, action)("nonexistent")

    def test_list(self, manager, fake_runner, make_descriptor) -> None:
        """list should return crontab lines containing the pattern."""
        fake_runner.crontab = f"{OTHER_JOB}\n"
        manager.install(make_descriptor("job"))

        listed = manager.list("checkpoint")
        assert len(listed) == 1
        assert listed[0].endswith("# checkpoint:job")
