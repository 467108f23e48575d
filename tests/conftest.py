import pytest

CONFIG_ENV_KEYS = (
    "UPDATE_PERIOD_NS",
    "UPDATE_WINDOW_CAPACITY",
    "REPORT_PERIOD_NS",
    "WORKLOAD_EXECUTION_MS",
    "WORKLOAD_SPIKE_MS",
    "WORKLOAD_SPIKE_PERCENT",
    "RUN_DURATION_SEC",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clear_config_env(monkeypatch):
    # load_dotenv writes straight into os.environ, so values leak between tests.
    for key in CONFIG_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
