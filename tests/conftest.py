import pytest


@pytest.fixture(autouse=True)
def isolate_github_token(monkeypatch):
    """Keep a developer's GitHub token out of the tests.

    Some tests assert on the headers sent to the API and on how the CLI
    picks up a token from the environment, so neither variable may leak
    in from the surrounding shell.
    """
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GH_TOKEN", raising=False)
    yield
