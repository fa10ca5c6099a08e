from __future__ import annotations

import json
from pathlib import Path

import pytest

from fixtures.codec import CORRUPT

from image_converter.convert import channel
from image_converter.convert import cli
from image_converter.convert.errors import DependencyError
from image_converter.convert.formats import TargetFormat


@pytest.fixture
def use_fake_codec(monkeypatch, fake_codec):
    requested: list[TargetFormat] = []

    def fake_build_codec(target: TargetFormat):
        requested.append(target)
        return fake_codec.as_codec()

    monkeypatch.setattr(cli, "_build_codec", fake_build_codec)
    return requested


def _log_events(workspace_root: Path) -> list[str]:
    log_path = workspace_root / "logs" / "convert.log"
    lines = log_path.read_text(encoding="utf-8").splitlines()
    return [json.loads(line).get("extra", {}).get("event") for line in lines]


def test_cli_converts_tree_and_prints_summary(
    workspace, use_fake_codec, capsys
):
    root = workspace.create(
        {"src": {"a.png": b"a", "nested": {"b.tga": b"b"}, "c.dds": b"c"}}
    )
    ws = root / "ws"

    code = cli.main(
        [
            str(root / "src"),
            "--dest",
            str(root / "out"),
            "--format",
            "dds",
            "--dds-format",
            "bc3_unorm",
            "--chunk-size",
            "1",
            "--workers",
            "2",
            "--workspace",
            str(ws),
        ]
    )

    captured = capsys.readouterr()
    assert code == 0
    assert use_fake_codec == [TargetFormat.DDS]
    assert (root / "out" / "a.dds").read_bytes().startswith(b"dds:dxt5:")
    assert (root / "out" / "nested" / "b.dds").is_file()
    assert not (root / "out" / "c.dds").exists()
    assert "convert summary" in captured.out
    assert "converted" in captured.out
    assert "Failures" not in captured.out
    events = _log_events(ws)
    assert "batch_started" in events
    assert "batch_completed" in events


def test_cli_defaults_destination_to_source(
    workspace, use_fake_codec, capsys
):
    root = workspace.create({"src": {"a.tga": b"a"}})

    code = cli.main(
        [
            str(root / "src"),
            "--format",
            "png",
            "--sequential",
            "--workspace",
            str(root / "ws"),
        ]
    )

    assert code == 0
    assert (root / "src" / "a.png").read_bytes().startswith(b"raster:png:")


def test_cli_reports_failures_with_exit_code(
    workspace, use_fake_codec, capsys
):
    root = workspace.create({"src": {"good.png": b"g", "bad.png": CORRUPT}})

    code = cli.main(
        [
            str(root / "src"),
            "--format",
            "tga",
            "--dest",
            str(root / "out"),
            "--workspace",
            str(root / "ws"),
        ]
    )

    captured = capsys.readouterr()
    assert code == 1
    assert "Failures" in captured.out
    assert "decode" in captured.out
    assert (root / "out" / "good.tga").is_file()
    assert "file_failed" in _log_events(root / "ws")


def test_cli_reads_format_from_config(workspace, use_fake_codec):
    root = workspace.create(
        {
            "src": {"a.png": b"a"},
            "ws": {
                "config": {
                    "convert.toml": '[execution]\ntarget_format = "jpg"\n'
                }
            },
        }
    )

    code = cli.main([str(root / "src"), "--workspace", str(root / "ws")])

    assert code == 0
    assert use_fake_codec == [TargetFormat.JPG]
    assert (root / "src" / "a.jpg").is_file()


def test_cli_rejects_unknown_format(workspace, capsys):
    root = workspace.create({"src": {"a.png": b"a"}})

    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(root / "src"), "--format", "webp"])

    assert excinfo.value.code == 2
    assert "Unknown target format" in capsys.readouterr().err


def test_cli_rejects_unknown_log_level(workspace, capsys):
    root = workspace.create({"src": {"a.png": b"a"}})

    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(root / "src"), "--log-level", "FOO"])

    assert excinfo.value.code == 2
    assert "Unknown log level 'FOO'" in capsys.readouterr().err


def test_cli_rejects_missing_source(tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(tmp_path / "absent")])

    assert excinfo.value.code == 2
    assert "Source directory not found" in capsys.readouterr().err


def test_cli_rejects_conflicting_strategies(workspace):
    root = workspace.create({"src": {"a.png": b"a"}})

    with pytest.raises(SystemExit):
        cli.main([str(root / "src"), "--sequential", "--parallel"])


def test_cli_reports_missing_dependency(workspace, monkeypatch, capsys):
    root = workspace.create({"src": {"a.png": b"a"}})

    def missing(target):  # noqa: ANN001
        raise DependencyError("Dependency 'Wand' is required")

    monkeypatch.setattr(cli, "_build_codec", missing)

    code = cli.main([str(root / "src"), "--format", "dds"])

    assert code == 1
    assert "Wand" in capsys.readouterr().err


def test_cli_reports_worker_crash(
    workspace, use_fake_codec, monkeypatch, capsys
):
    root = workspace.create({"src": {"a.png": b"a"}})

    def broken_convert(*args, **kwargs):  # noqa: ANN002, ANN003
        raise RuntimeError("engine exploded")

    monkeypatch.setattr(channel, "convert", broken_convert)

    code = cli.main(
        [str(root / "src"), "--format", "tga", "--workspace", str(root / "ws")]
    )

    assert code == 1
    assert "without sending an outcome" in capsys.readouterr().err


def test_config_init_writes_template(tmp_path, capsys):
    target = tmp_path / "conf" / "convert.toml"

    code = cli.main(["config", "init", "--path", str(target)])

    assert code == 0
    assert "[execution]" in target.read_text(encoding="utf-8")
    assert str(target) in capsys.readouterr().out

    assert cli.main(["config", "init", "--path", str(target)]) == 1
    assert "already exists" in capsys.readouterr().err
    assert cli.main(["config", "init", "--path", str(target), "--force"]) == 0


def test_config_init_defaults_to_workspace(tmp_path):
    code = cli.main(["config", "init", "--workspace", str(tmp_path / "ws")])

    assert code == 0
    assert (tmp_path / "ws" / "config" / "convert.toml").is_file()


def test_scan_lists_relative_paths(workspace, capsys):
    root = workspace.create(
        {"src": {"a.png": b"a", "b.txt": "x", "sub": {"c.dds": b"c"}}}
    )

    code = cli.scan_main([str(root / "src")])

    captured = capsys.readouterr()
    assert code == 0
    assert captured.out.splitlines() == ["a.png", str(Path("sub/c.dds"))]
    assert "2 file(s)" in captured.err


def test_scan_filters_by_target(workspace, capsys):
    root = workspace.create({"src": {"a.png": b"a", "c.dds": b"c"}})

    code = cli.scan_main([str(root / "src"), "--format", "dds"])

    assert code == 0
    assert capsys.readouterr().out.splitlines() == ["a.png"]


def test_formats_lists_targets_and_dds_modes(capsys):
    code = cli.formats_main([])

    out = capsys.readouterr().out
    assert code == 0
    for name in ("PNG", "JPEG", "JPG", "TGA", "DDS", "BC1_UNORM", "dxt5"):
        assert name in out
