from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

import lucid_agent_lifecycle.core.atomic as atomic
import lucid_agent_lifecycle.core.broker_conf as bc


OVERRIDE = "include_dir /etc/lucid/mosquitto-conf"
ANCHOR = "include_dir /etc/mosquitto/conf.d"


def _lines(*lines: str) -> list[str]:
    return [line + "\n" for line in lines]


def test_splice_inserts_before_anchor():
    lines = _lines("pid_file /run/mosquitto/mosquitto.pid", ANCHOR, "# trailing")

    out = bc.splice_override(lines, OVERRIDE, ANCHOR)

    assert out == _lines("pid_file /run/mosquitto/mosquitto.pid", OVERRIDE, ANCHOR, "# trailing")


def test_splice_returns_none_when_override_present_anywhere():
    # Wrong position is accepted as-is; it is never moved.
    lines = _lines(ANCHOR, "listener 1883", OVERRIDE)

    assert bc.splice_override(lines, OVERRIDE, ANCHOR) is None


def test_splice_uses_first_anchor_only():
    lines = _lines("a", ANCHOR, "b", ANCHOR)

    out = bc.splice_override(lines, OVERRIDE, ANCHOR)

    assert out == _lines("a", OVERRIDE, ANCHOR, "b", ANCHOR)
    assert out.count(OVERRIDE + "\n") == 1


def test_splice_missing_anchor_raises():
    with pytest.raises(bc.AnchorNotFoundError):
        bc.splice_override(_lines("pid_file x", "listener 1883"), OVERRIDE, ANCHOR)


def test_splice_matches_lines_with_surrounding_whitespace():
    lines = ["  " + ANCHOR + "  \n"]

    out = bc.splice_override(lines, OVERRIDE, ANCHOR)

    assert out == [OVERRIDE + "\n", "  " + ANCHOR + "  \n"]


def test_splice_keeps_crlf_line_endings():
    lines = ["a\r\n", ANCHOR + "\r\n"]

    out = bc.splice_override(lines, OVERRIDE, ANCHOR)

    assert out == ["a\r\n", OVERRIDE + "\r\n", ANCHOR + "\r\n"]


def test_splice_anchor_on_last_line_without_newline():
    out = bc.splice_override(["a\n", ANCHOR], OVERRIDE, ANCHOR)

    assert out == ["a\n", OVERRIDE + "\n", ANCHOR]


def test_commented_anchor_is_not_an_anchor():
    with pytest.raises(bc.AnchorNotFoundError):
        bc.splice_override(_lines("#" + ANCHOR), OVERRIDE, ANCHOR)


def test_ensure_override_places_override_right_before_anchor(broker_conf, sandbox_paths):
    before = broker_conf.read_text().splitlines()

    res = bc.ensure_override_include(
        broker_conf, sandbox_paths.override_directive, sandbox_paths.dropin_directive
    )

    after = broker_conf.read_text().splitlines()
    assert res.changed is True
    assert after.index(sandbox_paths.override_directive) == after.index(sandbox_paths.dropin_directive) - 1
    # every other line keeps its relative order
    assert [line for line in after if line != sandbox_paths.override_directive] == before


def test_ensure_override_is_idempotent(broker_conf, sandbox_paths):
    args = (broker_conf, sandbox_paths.override_directive, sandbox_paths.dropin_directive)

    bc.ensure_override_include(*args)
    once = broker_conf.read_bytes()
    res = bc.ensure_override_include(*args)

    assert res.changed is False
    assert broker_conf.read_bytes() == once


def test_ensure_override_missing_anchor_leaves_file_unmodified(sandbox_paths):
    path = sandbox_paths.broker_conf_path
    path.parent.mkdir(parents=True)
    path.write_bytes(b"pid_file /run/mosquitto/mosquitto.pid\nlistener 1883\n")

    with pytest.raises(bc.AnchorNotFoundError):
        bc.ensure_override_include(path, sandbox_paths.override_directive, sandbox_paths.dropin_directive)

    assert path.read_bytes() == b"pid_file /run/mosquitto/mosquitto.pid\nlistener 1883\n"


def test_ensure_override_missing_file_raises_broker_config_error(sandbox_paths):
    with pytest.raises(bc.BrokerConfigError):
        bc.ensure_override_include(
            sandbox_paths.broker_conf_path,
            sandbox_paths.override_directive,
            sandbox_paths.dropin_directive,
        )


def test_crash_before_rename_leaves_original_untouched(broker_conf, sandbox_paths, monkeypatch):
    original = broker_conf.read_bytes()

    def crash(src, dst):
        raise OSError("simulated crash before rename")

    monkeypatch.setattr(atomic.os, "replace", crash)

    with pytest.raises(bc.BrokerConfigError):
        bc.ensure_override_include(
            broker_conf, sandbox_paths.override_directive, sandbox_paths.dropin_directive
        )

    assert broker_conf.read_bytes() == original
    # no temp file left next to the config
    assert sorted(p.name for p in broker_conf.parent.iterdir()) == ["mosquitto.conf"]


def test_ensure_override_preserves_file_mode(broker_conf, sandbox_paths):
    broker_conf.chmod(0o644)

    bc.ensure_override_include(
        broker_conf, sandbox_paths.override_directive, sandbox_paths.dropin_directive
    )

    assert (broker_conf.stat().st_mode & 0o777) == 0o644


def test_inspect_reports_ordering(tmp_path: Path):
    path = tmp_path / "mosquitto.conf"

    path.write_text("\n".join([ANCHOR, OVERRIDE]) + "\n")
    status = bc.inspect_broker_conf(path, OVERRIDE, ANCHOR)
    assert status.override_present and status.anchor_present
    assert status.correctly_ordered is False

    path.write_text("\n".join([OVERRIDE, ANCHOR]) + "\n")
    assert bc.inspect_broker_conf(path, OVERRIDE, ANCHOR).correctly_ordered is True

    path.write_text(OVERRIDE + "\n")
    status = bc.inspect_broker_conf(path, OVERRIDE, ANCHOR)
    assert status.anchor_present is False
    assert status.correctly_ordered is False


def test_ensure_override_keeps_non_utf8_bytes(sandbox_paths):
    path = sandbox_paths.broker_conf_path
    path.parent.mkdir(parents=True)
    dropin = sandbox_paths.dropin_directive.encode()
    path.write_bytes(b"# caf\xe9 broker\n" + dropin + b"\n# fin \xff\n")

    res = bc.ensure_override_include(path, sandbox_paths.override_directive, sandbox_paths.dropin_directive)

    assert res.changed is True
    assert path.read_bytes() == (
        b"# caf\xe9 broker\n"
        + sandbox_paths.override_directive.encode()
        + b"\n"
        + dropin
        + b"\n# fin \xff\n"
    )


def test_ensure_override_writes_through_symlink(broker_conf, sandbox_paths, tmp_path: Path):
    link = tmp_path / "mosquitto-link.conf"
    link.symlink_to(broker_conf)

    bc.ensure_override_include(link, sandbox_paths.override_directive, sandbox_paths.dropin_directive)

    assert link.is_symlink()
    assert sandbox_paths.override_directive in broker_conf.read_text().splitlines()


def test_replacement_takes_original_owner(tmp_path: Path, monkeypatch):
    dst = tmp_path / "new.conf"
    dst.write_text("x")
    original = SimpleNamespace(stat=lambda: SimpleNamespace(st_uid=123, st_gid=456))
    chowned = []
    monkeypatch.setattr(atomic.os, "chown", lambda p, uid, gid: chowned.append((p, uid, gid)))

    atomic._copy_owner(original, dst)

    assert chowned == [(dst, 123, 456)]


def test_replacement_skips_chown_when_owner_matches(broker_conf, sandbox_paths, monkeypatch):
    chowned = []
    monkeypatch.setattr(atomic.os, "chown", lambda *a: chowned.append(a))

    bc.ensure_override_include(broker_conf, sandbox_paths.override_directive, sandbox_paths.dropin_directive)

    assert chowned == []
