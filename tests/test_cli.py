import json

import pytest

from engine import cli


@pytest.fixture
def isolated_settings(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("RPA_SETTINGS_DIR", str(tmp_path / "settings"))
    monkeypatch.setenv("RPA_LOG_ROOT", str(tmp_path / "runs"))
    return tmp_path


def test_run_empty_configuration_reports_completion(isolated_settings, capsys):
    path = isolated_settings / "rpa_empty.json"
    path.write_text(json.dumps({"name": "empty", "actions": []}), encoding="utf-8")

    code = cli.main(["run", str(path), "--json"])

    report = json.loads(capsys.readouterr().out)
    assert code == 0
    assert report["status"] == "completed"
    assert report["summary"]["total_actions"] == 0
    recent = json.loads((isolated_settings / "settings" / "settings.json").read_text(encoding="utf-8"))
    assert recent["recentConfigurations"] == [str(path.resolve())]


def test_run_rejects_malformed_file(isolated_settings):
    path = isolated_settings / "broken.json"
    path.write_text("{", encoding="utf-8")
    assert cli.main(["run", str(path)]) == 2


def test_list_scans_extra_directories(isolated_settings, capsys):
    configs = isolated_settings / "configs"
    configs.mkdir()
    (configs / "demo.json").write_text(
        json.dumps({"name": "demo", "actions": [{"type": "wait"}]}), encoding="utf-8"
    )

    assert cli.main(["list", "--dir", str(configs)]) == 0

    out = capsys.readouterr().out
    assert "demo\t1 actions" in out


def test_parser_accepts_policy_flags():
    args = cli.build_parser().parse_args(
        ["run", "x.json", "--speed", "2", "--no-human", "--no-stop-on-error", "--live", "--no-headless"]
    )
    assert args.speed == 2.0
    assert args.human_like_mode is False
    assert args.stop_on_error is False
    assert args.live is True
    assert args.headless is False
