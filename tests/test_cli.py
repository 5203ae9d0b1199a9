import logging

import pytest

from img_prep.cli import main, parse_args

URL = "http://example.com/a.jpg"


@pytest.fixture(autouse=True)
def restore_root_logger():
    # main() reconfigures the root logger with force=True.
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_help_exits_zero(capsys):
    with pytest.raises(SystemExit) as excinfo:
        parse_args(["--help"])
    assert excinfo.value.code == 0
    assert "--target-directory" in capsys.readouterr().out


def test_missing_required_flags_exit_non_zero(capsys):
    with pytest.raises(SystemExit) as excinfo:
        parse_args(["--csv-file", "images.csv"])
    assert excinfo.value.code == 2
    assert "usage:" in capsys.readouterr().err


def test_underscore_aliases_and_defaults():
    args = parse_args(["--target_directory", "out", "--csv_file", "images.csv"])
    assert str(args.target_directory) == "out"
    assert str(args.csv_file) == "images.csv"
    assert args.derive_fields is True
    assert args.skip_header is None
    assert args.on_error == "skip"
    assert args.resize_backend == "auto"
    assert args.debug is False


def test_no_derive_fields_flag():
    args = parse_args(["--target-directory", "out", "--csv-file", "x.csv", "--no-derive-fields", "--skip-header"])
    assert args.derive_fields is False
    assert args.skip_header is True


def test_unreadable_csv_returns_usage_code(tmp_path, capsys):
    code = main(["--target-directory", str(tmp_path / "out"), "--csv-file", str(tmp_path / "missing.csv")])
    assert code == 2
    assert "Cannot open CSV file" in capsys.readouterr().out


def test_main_runs_batch_and_reports_completion(tmp_path, fake_exiftool, monkeypatch, capsys, image_session, write_csv):
    csv_file = write_csv(tmp_path / "images.csv", "url,image_name\nhttp://example.com/a.jpg,My Photo\n")
    monkeypatch.setattr("img_prep.pipeline.build_session", lambda config: image_session)

    code = main(
        [
            "--target-directory", str(tmp_path / "out"),
            "--csv-file", str(csv_file),
            "--resize-backend", "pillow",
        ]
    )

    assert code == 0
    assert (tmp_path / "out" / "my_photo.jpg").exists()
    out = capsys.readouterr().out
    assert "Done! 1/1 succeeded, 0 failed" in out
    assert "Downloading image" not in out


def test_debug_flag_logs_each_step(tmp_path, fake_exiftool, monkeypatch, capsys, image_session, write_csv):
    csv_file = write_csv(tmp_path / "images.csv", "url,image_name\nhttp://example.com/a.jpg,My Photo\n")
    monkeypatch.setattr("img_prep.pipeline.build_session", lambda config: image_session)

    code = main(
        [
            "--target-directory", str(tmp_path / "out"),
            "--csv-file", str(csv_file),
            "--resize-backend", "pillow",
            "--debug",
        ]
    )

    assert code == 0
    out = capsys.readouterr().out
    assert "Downloading image from http://example.com/a.jpg" in out
    assert "Overwriting EXIF tags" in out


def test_failed_record_gives_exit_code_one(tmp_path, fake_exiftool, monkeypatch, session_factory, write_csv):
    csv_file = write_csv(tmp_path / "images.csv", "url,image_name\nhttp://example.com/a.jpg,My Photo\n")
    monkeypatch.setattr("img_prep.pipeline.build_session", lambda config: session_factory())

    code = main(["--target-directory", str(tmp_path / "out"), "--csv-file", str(csv_file)])
    assert code == 1


def test_invalid_utf8_mid_file_still_reports_completion(tmp_path, fake_exiftool, monkeypatch, capsys, image_session):
    csv_file = tmp_path / "images.csv"
    csv_file.write_bytes(
        b"url,image_name\n"
        b"http://example.com/a.jpg,My Photo\n"
        b"http://example.com/b.jpg," + b"x" * 20000 + b"\xe9\n"
    )
    monkeypatch.setattr("img_prep.pipeline.build_session", lambda config: image_session)

    code = main(
        [
            "--target-directory", str(tmp_path / "out"),
            "--csv-file", str(csv_file),
            "--resize-backend", "pillow",
        ]
    )

    assert code == 1
    assert (tmp_path / "out" / "my_photo.jpg").exists()
    out = capsys.readouterr().out
    assert "not valid UTF-8" in out
    assert "Done! 1/2 succeeded, 1 failed" in out
