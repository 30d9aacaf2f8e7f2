from berryorm import Settings, load_settings
from berryorm.config import DEFAULT_DATABASE_URL


def _isolate(monkeypatch, *names):
    # Restores the variables even when load_dotenv sets them.
    for name in names:
        monkeypatch.setenv(name, '')
        monkeypatch.delenv(name)


def test_defaults(monkeypatch, tmp_path):
    _isolate(monkeypatch, 'CFGA_DATABASE_URL', 'CFGA_ECHO')
    settings = load_settings(str(tmp_path / 'missing.env'), prefix='CFGA_')
    assert settings == Settings()
    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.echo is False


def test_environment(monkeypatch, tmp_path):
    monkeypatch.setenv('CFGB_DATABASE_URL', 'postgresql+asyncpg://user@localhost/app')
    monkeypatch.setenv('CFGB_ECHO', 'Yes')
    settings = load_settings(str(tmp_path / 'missing.env'), prefix='CFGB_')
    assert settings.database_url == 'postgresql+asyncpg://user@localhost/app'
    assert settings.echo is True


def test_env_file_and_precedence(monkeypatch, tmp_path):
    _isolate(monkeypatch, 'CFGC_DATABASE_URL', 'CFGC_ECHO')
    env_file = tmp_path / '.env'
    env_file.write_text("CFGC_DATABASE_URL=sqlite+aiosqlite:///from_file.db\nCFGC_ECHO=1\n")
    monkeypatch.setenv('CFGC_ECHO', 'off')

    settings = load_settings(str(env_file), prefix='CFGC_')

    assert settings.database_url == 'sqlite+aiosqlite:///from_file.db'
    assert settings.echo is False
