import json
import os
from pathlib import Path

import pytest

from filexfer.config import Config, load_config


@pytest.fixture(autouse=True)
def clean_env(tmp_path, monkeypatch):
    # Keep a developer's .env or FILEXFER_* variables out of the tests
    monkeypatch.chdir(tmp_path)
    for key in ['FILEXFER_HOST', 'FILEXFER_PORT', 'FILEXFER_OUTPUT_DIR',
                'FILEXFER_CHUNK_SIZE', 'FILEXFER_MAX_HEADER_SIZE', 'FILEXFER_LOG_LEVEL']:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    config = Config()
    assert config.port == 8469
    assert config.chunk_size == 4096
    assert config.output_dir == Path('.')


def test_from_env(monkeypatch):
    monkeypatch.setenv('FILEXFER_PORT', '9100')
    monkeypatch.setenv('FILEXFER_OUTPUT_DIR', '/srv/incoming')
    monkeypatch.setenv('FILEXFER_CHUNK_SIZE', '8192')

    config = Config.from_env()

    assert config.port == 9100
    assert config.output_dir == Path('/srv/incoming')
    assert config.chunk_size == 8192


def test_from_dotenv_file(tmp_path):
    (tmp_path / '.env').write_text('FILEXFER_LOG_LEVEL=DEBUG\n')
    try:
        assert Config.from_env().log_level == 'DEBUG'
    finally:
        # load_dotenv writes straight into os.environ
        os.environ.pop('FILEXFER_LOG_LEVEL', None)


def test_from_file(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({'port': 7000, 'max_header_size': 512}))

    config = Config.from_file(path)

    assert config.port == 7000
    assert config.max_header_size == 512
    assert config.host == '0.0.0.0'


def test_from_missing_file(tmp_path):
    assert Config.from_file(tmp_path / 'nope.json') == Config()


def test_save_and_reload(tmp_path):
    path = tmp_path / 'config.json'
    Config(port=7001, output_dir=Path('recv')).save(path)

    assert Config.from_file(path) == Config(port=7001, output_dir=Path('recv'))


def test_env_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({'port': 7000, 'chunk_size': 1024}))
    monkeypatch.setenv('FILEXFER_PORT', '7500')

    config = load_config(path)

    assert config.port == 7500
    assert config.chunk_size == 1024


@pytest.mark.parametrize('overrides', [
    {'chunk_size': 0},
    {'max_header_size': -1},
    {'port': 70000},
])
def test_validate_rejects_bad_values(overrides):
    with pytest.raises(ValueError):
        Config(**overrides).validate()


def test_load_config_validates(monkeypatch):
    monkeypatch.setenv('FILEXFER_CHUNK_SIZE', '0')
    with pytest.raises(ValueError):
        load_config()
