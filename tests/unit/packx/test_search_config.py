from pathlib import Path

import pytest

from packx.exceptions import ConfigFileError, ConfigTemplateExistsError
from packx.search_config import (
    CONFIG_TEMPLATE,
    load_search_config,
    parse_sectioned_text,
    write_config_template,
)


@pytest.mark.unit
def test_parse_sectioned_text_collects_known_sections() -> None:
    text = """
# comment
ignored before any header
[search]
console.log
  TODO
[extensions]
ts
[exclude]
d.ts
[exclude-strings]
@generated
[mystery]
dropped
"""

    config = parse_sectioned_text(text.splitlines())

    assert config.search_terms == ["console.log", "TODO"]
    assert config.extensions == ["ts"]
    assert config.exclude_extensions == ["d.ts"]
    assert config.exclude_strings == ["@generated"]


@pytest.mark.unit
def test_template_parses_to_empty_config() -> None:
    config = parse_sectioned_text(CONFIG_TEMPLATE.splitlines())

    assert config.search_terms == []
    assert config.extensions == []


@pytest.mark.unit
def test_load_yaml_config(tmp_path: Path) -> None:
    path = tmp_path / "search.yaml"
    path.write_text("search:\n  - useState\n  - useEffect\nextensions: tsx\n", encoding="utf-8")

    config = load_search_config(path)

    assert config.search_terms == ["useState", "useEffect"]
    assert config.extensions == ["tsx"]


@pytest.mark.unit
def test_load_yaml_config_rejects_unknown_keys(tmp_path: Path) -> None:
    path = tmp_path / "search.yml"
    path.write_text("colour: blue\n", encoding="utf-8")

    with pytest.raises(ConfigFileError, match="unknown config key"):
        load_search_config(path)


@pytest.mark.unit
def test_load_missing_config_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigFileError) as excinfo:
        load_search_config(tmp_path / "missing.txt")

    assert excinfo.value.exit_code == 1
    assert "missing.txt" in str(excinfo.value)


@pytest.mark.unit
def test_write_config_template_refuses_to_overwrite(tmp_path: Path) -> None:
    target = tmp_path / "pack-config.txt"

    assert write_config_template(target) == target
    assert target.read_text(encoding="utf-8") == CONFIG_TEMPLATE
    with pytest.raises(ConfigTemplateExistsError):
        write_config_template(target)
