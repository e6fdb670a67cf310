"""
Tests for configuration loading, environment overrides and validation.
"""

import json

import pytest

from breakdown.config import ENV_OVERRIDES, BreakdownConfig, ConfigManager
from breakdown.errors import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in list(ENV_OVERRIDES) + ['BREAKDOWN_CONFIG', 'BREAKDOWN_DEBUG']:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def manager(tmp_path):
    return ConfigManager(str(tmp_path / "config.json"), env_file=str(tmp_path / ".env"))


class TestDefaults:

    def test_defaults(self, manager):
        config = manager.load_config()

        assert config.processing.chunk_size == 12000
        assert config.processing.chunk_overlap == 800
        assert config.processing.multi_pass_threshold == 60000
        assert config.processing.min_text_chars == 1000
        assert config.processing.min_chars_per_page == 200
        assert config.processing.max_render_pages == 6
        assert config.processing.render_dpi == 110
        assert config.processing.jpeg_quality == 70
        assert config.model.model_name == "claude-sonnet-4-20250514"
        assert config.model.max_output_tokens == 8000
        assert config.server.port == 3000

    def test_missing_key_is_not_fatal(self, manager):
        assert manager.load_config().model.api_key is None


class TestOverrides:

    def test_environment_overrides(self, manager, monkeypatch):
        monkeypatch.setenv('ANTHROPIC_API_KEY', 'sk-env')
        monkeypatch.setenv('BREAKDOWN_MULTI_PASS_THRESHOLD', '5000')
        monkeypatch.setenv('BREAKDOWN_MIN_CHARS_PER_PAGE', '150.5')
        monkeypatch.setenv('PORT', '8080')

        config = manager.load_config()

        assert config.model.api_key == 'sk-env'
        assert config.processing.multi_pass_threshold == 5000
        assert config.processing.min_chars_per_page == 150.5
        assert config.server.port == 8080

    def test_dotenv_file_is_loaded(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("ANTHROPIC_API_KEY=sk-dotenv\n")
        # Registers the variable with monkeypatch so load_dotenv's write is undone
        monkeypatch.setenv('ANTHROPIC_API_KEY', 'placeholder')
        monkeypatch.delenv('ANTHROPIC_API_KEY')

        config = ConfigManager(str(tmp_path / "config.json"), env_file=str(env_file)).load_config()

        assert config.model.api_key == 'sk-dotenv'

    def test_file_then_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            'processing': {'chunk_size': 5000, 'chunk_overlap': 100},
            'paths': {'upload_dir': '/srv/uploads'},
        }))
        monkeypatch.setenv('BREAKDOWN_CHUNK_OVERLAP', '200')

        config = ConfigManager(str(path), env_file=str(tmp_path / ".env")).load_config()

        assert config.processing.chunk_size == 5000
        assert config.processing.chunk_overlap == 200
        assert config.paths.upload_dir == '/srv/uploads'

    def test_bad_number_in_environment(self, manager, monkeypatch):
        monkeypatch.setenv('BREAKDOWN_CHUNK_SIZE', 'lots')

        with pytest.raises(ConfigError):
            manager.load_config()


class TestValidation:

    @pytest.mark.parametrize("section,values", [
        ('processing', {'chunk_size': 0}),
        ('processing', {'chunk_size': 100, 'chunk_overlap': 100}),
        ('processing', {'notes_concurrency': 0}),
        ('processing', {'jpeg_quality': 101}),
        ('model', {'max_retries': 0}),
    ])
    def test_invalid_values(self, tmp_path, section, values):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({section: values}))

        with pytest.raises(ConfigError):
            ConfigManager(str(path), env_file=str(tmp_path / ".env")).load_config()

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({'processing': {'chunk_sise': 10}}))

        with pytest.raises(ConfigError):
            ConfigManager(str(path), env_file=str(tmp_path / ".env")).load_config()

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")

        with pytest.raises(ConfigError):
            ConfigManager(str(path), env_file=str(tmp_path / ".env")).load_config()


class TestSaving:

    def test_saved_config_omits_api_key(self, manager):
        config = BreakdownConfig()
        config.model.api_key = "sk-secret"

        manager.save_config(config)

        saved = json.loads(manager.config_path.read_text())
        assert 'api_key' not in saved['model']
        assert saved['processing']['chunk_size'] == 12000

    def test_sample_config_loads_back(self, manager, tmp_path):
        sample = tmp_path / "sample.json"
        manager.create_sample_config(str(sample))

        config = ConfigManager(str(sample), env_file=str(tmp_path / ".env")).load_config()

        assert config.processing.multi_pass_threshold == 60000

    def test_env_template(self, manager, tmp_path):
        target = tmp_path / ".env.template"
        manager.create_env_template(str(target))

        assert "ANTHROPIC_API_KEY=" in target.read_text()
