"""Tests for the examples/cluster_points.py command line script."""

import importlib.util
import json
from pathlib import Path

import pandas as pd
import pytest
import yaml

SCRIPT_PATH = Path(__file__).resolve().parent.parent / "examples" / "cluster_points.py"


@pytest.fixture(scope="module")
def cli():
    """Load the example script as a module."""
    spec = importlib.util.spec_from_file_location("cluster_points", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def cities_csv(tmp_path):
    """CSV with a name column and [lat, lon] coordinates."""
    df = pd.DataFrame(
        {
            "city": ["Austin", "Dallas", "Houston", "Manhattan", "Empire State"],
            "lat": [30.25, 32.7767, 29.7604, 40.7903, 40.7484],
            "lon": [97.75, 96.797, 95.3698, 73.9597, 73.9857],
        }
    )
    path = tmp_path / "cities.csv"
    df.to_csv(path, index=False)
    return path


class TestClusterPointsCLI:
    """Test the CSV clustering script end to end."""

    def test_haversine_run(self, cli, cities_csv, tmp_path):
        """Test clustering coordinates writes a results file."""
        output = tmp_path / "out" / "clusters.json"

        code = cli.main(
            [
                "--input-csv", str(cities_csv),
                "--output", str(output),
                "--columns", "lat", "lon",
                "--metric", "haversine",
                "--seed", "0",
            ]
        )

        assert code == 0
        with open(output, "r", encoding="utf-8") as f:
            data = json.load(f)
        assert data["metadata"]["config"]["metric"] == "haversine"
        assert data["result"]["n_clusters"] == 2
        assert data["result"]["labels"] == [0, 0, 0, 1, 1]

    def test_yaml_config(self, cli, cities_csv, tmp_path):
        """Test YAML values are used and command line flags override them."""
        config_path = tmp_path / "ap.yaml"
        with open(config_path, "w") as f:
            yaml.safe_dump({"damping": 0.8, "max_iter": 120, "metric": "euclidean"}, f)
        output = tmp_path / "clusters.json"

        cli.main(
            [
                "--input-csv", str(cities_csv),
                "--output", str(output),
                "--config", str(config_path),
                "--damping", "0.9",
                "--no-noise",
            ]
        )

        with open(output, "r", encoding="utf-8") as f:
            config = json.load(f)["metadata"]["config"]
        assert config["damping"] == 0.9, "Flag should override YAML"
        assert config["max_iter"] == 120
        assert config["add_noise"] is False

    def test_numeric_columns_by_default(self, cli, cities_csv):
        """Test non-numeric columns are dropped when none are requested."""
        points = cli.load_points(cities_csv)
        assert list(points.columns) == ["lat", "lon"]

    def test_unknown_column(self, cli, cities_csv):
        """Test requesting a missing column raises."""
        with pytest.raises(ValueError, match="Columns not found"):
            cli.load_points(cities_csv, ["altitude"])
