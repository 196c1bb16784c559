from pathlib import Path

import pytest
from pydantic import ValidationError
from pytest_mock import MockerFixture

from packx import settings as settings_module
from packx.config import OutputStyle
from packx.settings import ConceptSettings, Settings, resolve_packx_bin


@pytest.mark.unit
def test_settings_defaults() -> None:
    s = Settings()

    assert s.roots == [Path()]
    assert s.context is None
    assert s.resolved_style() is OutputStyle.XML
    assert s.resolved_output() == Path("packx-output.xml")


@pytest.mark.unit
def test_style_follows_output_suffix_unless_explicit() -> None:
    assert Settings(output=Path("bundle.md")).resolved_style() is OutputStyle.MARKDOWN
    assert Settings(output=Path("bundle.md"), style=OutputStyle.XML).resolved_style() is OutputStyle.XML
    assert Settings(style=OutputStyle.MARKDOWN).resolved_output() == Path("packx-output.md")


@pytest.mark.unit
def test_negative_context_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(context=-1)


@pytest.mark.unit
def test_concept_settings_defaults() -> None:
    s = ConceptSettings(query="retry logic")

    assert (s.keywords, s.top_files, s.max_tokens) == (4, 8, 50_000)
    assert s.pack_args == []


@pytest.mark.unit
def test_resolve_packx_bin_reads_environment(monkeypatch: pytest.MonkeyPatch, mocker: MockerFixture) -> None:
    mocker.patch.object(settings_module, "ENV_FILE", "")
    monkeypatch.setenv("PACKX_BIN", "  /opt/packx/bin/packx  ")

    assert resolve_packx_bin() == "/opt/packx/bin/packx"

    monkeypatch.delenv("PACKX_BIN")
    assert resolve_packx_bin() == ""


@pytest.mark.unit
def test_resolve_packx_bin_loads_env_file(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    mocker: MockerFixture,
) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("PACKX_BIN=node /tools/pack.js\n", encoding="utf-8")
    mocker.patch.object(settings_module, "ENV_FILE", str(env_file))
    monkeypatch.setenv("PACKX_BIN", "unset")
    monkeypatch.delenv("PACKX_BIN")

    assert resolve_packx_bin() == "node /tools/pack.js"
