from click.testing import CliRunner

from lawcrawl.cli import cli


def test_sites_lists_configured_sites():
    result = CliRunner().invoke(cli, ["sites"])
    assert result.exit_code == 0
    assert "florida" in result.output
    assert "massachusetts" in result.output


def test_firestore_store_fails_fast_without_credentials(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("FIREBASE_PROJECT_ID", raising=False)
    monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)

    result = CliRunner().invoke(cli, ["crawl", "florida", "--store", "firestore"])

    assert result.exit_code == 1
    assert "FIREBASE_PROJECT_ID" in result.output


def test_unknown_site_is_a_configuration_error():
    result = CliRunner().invoke(cli, ["crawl", "atlantis"])
    assert result.exit_code == 1
    assert "Unknown site" in result.output
