import textwrap

import pytest
from click.testing import CliRunner
from loguru import logger

import farmutil.config
from farmutil.cli import cli


@pytest.fixture
def runner(tmp_path, monkeypatch):
    # log files and the (missing) config directory live in tmp_path
    monkeypatch.chdir(tmp_path)
    return CliRunner()


def test_run_without_arguments_shows_help(runner):
    result = runner.invoke(cli, ["run"])
    assert result.exit_code == 0
    assert "Usage:" in result.output
    assert "--connect" in result.output


def test_run_without_utility_name(runner):
    result = runner.invoke(cli, ["run", "-p", "2", "-q"])
    assert result.exit_code == -1
    assert "A utility name must be supplied!" in result.output


def test_run_worker_info_with_local_workers(runner, tmp_path):
    result = runner.invoke(cli, ["run", "-q", "-p", "2", "-n", "testnode", "workerInfo"])
    assert result.exit_code == 0, result.output
    assert "Node testnode: 2 workers" in result.output
    assert "wrk0 : local" in result.output
    assert "wrk1 : local" in result.output
    assert (tmp_path / "farmutil.testnode.log").is_file()


def test_run_with_direct_host(runner, farmsrv):
    result = runner.invoke(
        cli,
        ["run", "-q", "-p", "1", "-n", "master", "-c", f"127.0.0.1:{farmsrv.port}", "workerInfo", "--remote-only"],
    )
    assert result.exit_code == 0, result.output
    assert "Node master: 1 workers" in result.output
    assert "net0 : farmsrv-peer (4 cores)" in result.output
    farmsrv.thread.join(5)
    assert '"workerName": "net0"' in farmsrv.received[0]


def test_run_with_host_file(runner, tmp_path, farmsrv):
    hostFile = tmp_path / "hosts.txt"
    hostFile.write_text(f"# the farm\n127.0.0.1:{farmsrv.port}\n")
    result = runner.invoke(cli, ["run", "-q", "-p", "0", "-s", str(hostFile), "workerInfo"])
    assert result.exit_code == 0, result.output
    assert "net0 : farmsrv-peer" in result.output


def test_run_unreachable_host_fails(runner, closedPort, tmp_path):
    result = runner.invoke(
        cli, ["run", "-q", "-p", "1", "-n", "n1", "-c", f"127.0.0.1:{closedPort}", "workerInfo"]
    )
    assert result.exit_code == 1
    assert "Caught a critical exception" in result.output
    assert f"127.0.0.1:{closedPort}" in result.output
    logger.remove()  # flush and close the log file
    log = (tmp_path / "farmutil.n1.log").read_text()
    assert "Caught a critical exception" in log


def test_run_invalid_host_spec(runner):
    result = runner.invoke(cli, ["run", "-q", "-c", "a:1:2", "workerInfo"])
    assert result.exit_code == 1
    assert "Invalid host specification 'a:1:2'!" in result.output


def test_run_unknown_utility(runner):
    result = runner.invoke(cli, ["run", "-q", "-p", "1", "noSuchUtility"])
    assert result.exit_code == 1
    assert "noSuchUtility" in result.output


def test_run_utility_from_search_path(runner, tmp_path):
    utilDir = tmp_path / "myUtils"
    utilDir.mkdir()
    (utilDir / "exitWith.py").write_text(
        textwrap.dedent(
            """
            from farmutil.plugins import Utility

            class ExitWith(Utility):
                def run(self, args):
                    print("cores:", self.services.scheduler.getCoreCount())
                    return int(args[0])

            def getDescription():
                return "exit with the given code"

            def createInstance(services):
                return ExitWith(services)
            """
        )
    )
    result = runner.invoke(cli, ["run", "-q", "-p", "3", "-a", str(utilDir), "exitWith", "7"])
    assert result.exit_code == 7, result.output
    assert "cores: 3" in result.output


def test_encrypt_decrypt_commands(runner, tmp_path, monkeypatch):
    monkeypatch.setattr(farmutil.config.getpass, "getpass", lambda prompt: "phrase")
    vault = tmp_path / "vault"
    vault.write_text("ssh_pass: hunter2\n")

    result = runner.invoke(cli, ["encrypt", str(vault)])
    assert result.exit_code == 0, result.output
    assert "hunter2" not in vault.read_text()

    result = runner.invoke(cli, ["decrypt", str(vault)])
    assert result.exit_code == 0, result.output
    assert vault.read_text() == "ssh_pass: hunter2\n"


def test_decrypt_missing_file(runner, tmp_path):
    result = runner.invoke(cli, ["decrypt", str(tmp_path / "nothing")])
    assert result.exit_code == 1
