import json

from typer.testing import CliRunner

from bridgescope import cli
from bridgescope import container
from bridgescope.utils.errors import FatalStartupError

from conftest import ledger_tx

runner = CliRunner()


def test_replay_feeds_saved_payload_through_ingestion(services, monkeypatch, tmp_path):
    monkeypatch.setattr(container, "init_services", lambda worker=False: services)
    payload = tmp_path / "payload.json"
    payload.write_text(json.dumps({"transactions": [ledger_tx("sig-replayed"), ledger_tx("noise", bridge=False, relayer=None)]}))

    result = runner.invoke(cli.app, ["replay", str(payload)])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout.strip().splitlines()[-1]) == {"processed": 1, "discarded": 1, "failed": 0}


def test_sync_exits_1_on_fatal_startup(services, monkeypatch):
    monkeypatch.setattr(container, "init_services", lambda worker=False: services)

    def boom(svc, engine):
        raise FatalStartupError("SUBGRAPH_URL_BASE is not configured")

    monkeypatch.setattr("bridgescope.sync.bootstrap.bootstrap", boom)

    result = runner.invoke(cli.app, ["sync", "--once"])

    assert result.exit_code == 1
