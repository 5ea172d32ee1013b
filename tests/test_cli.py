import json

import pytest

from solbridge_client import cli


@pytest.fixture(autouse=True)
def offline_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SOLBRIDGE_API_URL", "https://api.test")
    monkeypatch.delenv("SOLBRIDGE_TIMEOUT", raising=False)


def test_parser_requires_command() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_status_reports_missing_session(tmp_path) -> None:
    creds = tmp_path / "credentials.json"
    assert cli.main(["--credentials", str(creds), "status"]) == 1


def test_status_and_logout_with_stored_session(tmp_path) -> None:
    creds = tmp_path / "credentials.json"
    creds.write_text(
        json.dumps(
            {
                "access_token": "eyJ.header.tok_abcdef",
                "refresh_token": "r1",
                "user_data": json.dumps({"email": "alice@example.com"}),
            }
        )
    )

    assert cli.main(["--credentials", str(creds), "status"]) == 0
    assert cli.main(["--credentials", str(creds), "logout"]) == 0
    assert json.loads(creds.read_text()) == {}
    assert cli.main(["--credentials", str(creds), "status"]) == 1


def test_refresh_without_session_fails_cleanly(tmp_path) -> None:
    creds = tmp_path / "credentials.json"
    assert cli.main(["--credentials", str(creds), "refresh"]) == 1


def test_invalid_configuration_exit_code(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("SOLBRIDGE_TIMEOUT", "never")
    assert cli.main(["--credentials", str(tmp_path / "c.json"), "status"]) == 2
