from fastapi.testclient import TestClient

from github_feed import config
from github_feed.database import dispose_engine


def test_lifespan_builds_shared_store(tmp_path, settings, monkeypatch):
    db_path = tmp_path / "data" / "feed.db"
    url = f"sqlite:///{db_path}"
    monkeypatch.setattr(config, "FEED_DB_PATH", db_path)
    monkeypatch.setattr(config, "FEED_DB_URL", url)
    monkeypatch.setattr(config, "FEED_REQUIRE_AUTH", False)

    import main

    try:
        with TestClient(main.app) as client:
            store = main.app.state.store
            response = client.get("/api/feed/count")
            assert response.status_code == 200
            assert response.json() == {"count": 0}
            assert main.app.state.store is store
        assert db_path.exists()
    finally:
        dispose_engine(url)
