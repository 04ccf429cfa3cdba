import pytest
from fastapi.testclient import TestClient

from beamview.assets import AssetTree
from beamview.server import create_app


@pytest.fixture
def example_tree():
    return AssetTree.from_contents({
        "index.html": "<h1>hi</h1>",
        "app.js": "console.log(1)",
        "data/beams.geojson": '{"type": "FeatureCollection", "features": []}',
        "docs/index.html": "<h1>docs</h1>",
        "docs/guide.txt": "read me",
        "empty/placeholder.bin": b"\x00\x01\x02",
    })


@pytest.fixture
def client(example_tree):
    return TestClient(create_app(example_tree))


@pytest.fixture
def dist_dir(tmp_path):
    root = tmp_path / "dist"
    (root / "assets").mkdir(parents=True)
    (root / "index.html").write_text("<h1>hi</h1>")
    (root / "assets" / "app.js").write_text("console.log(1)")
    (root / "assets" / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    return root
