import pytest
from pathlib import Path
from typer.testing import CliRunner

from workdocs.domain.interfaces.user_interface import ProgressReporter, UserInterface
from workdocs.infrastructure.config import settings
from workdocs.infrastructure.config.settings import WorkdayEnvironment


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_ui(mocker):
    """A UserInterface double whose progress reporter is also a mock."""
    ui = mocker.MagicMock(spec=UserInterface)
    ui.create_progress.return_value = mocker.MagicMock(spec=ProgressReporter)
    ui.ask_yes_no_question.return_value = False
    return ui


@pytest.fixture
def sandbox_environment():
    return WorkdayEnvironment(
        name="sandbox",
        token_url="https://auth.example.test/oauth2/token",
        api_url="https://api.example.test/ccx/service/tenant/Human_Resources/v42.0",
        client_id="client-id",
        client_secret="client-secret",
        refresh_token="refresh-token",
    )


@pytest.fixture
def document_dirs(tmp_path: Path):
    """Creates empty input/processed/failed directories."""
    dirs = {name: tmp_path / name for name in ("input", "processed", "failed")}
    dirs["input"].mkdir()
    return dirs


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keeps test overrides and Workday variables from leaking between tests."""
    for name in list(settings.os.environ):
        if name.startswith(("SANDBOX_", "SANDBOX_PREVIEW_", "PRODUCTION_")):
            monkeypatch.delenv(name, raising=False)
    settings.clear_test_config()
    yield
    settings.clear_test_config()
