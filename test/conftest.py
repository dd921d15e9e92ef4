import pathlib
import tempfile

import numpy as np
import pandas as pd
import pytest


class FakeProbe:
    """memory probe reporting whatever `value` is set to"""

    def __init__(self, value: float = 10.0):
        self.value = value
        self.calls = 0

    def current_usage_mb(self) -> float:
        self.calls += 1
        return self.value

    def ram_threshold_exceeded(self, max_ram_mb: float) -> bool:
        return self.current_usage_mb() > max_ram_mb


@pytest.fixture
def temp_dir():
    """Create a temporary directory for scratch files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield pathlib.Path(tmp_dir)


@pytest.fixture
def probe():
    return FakeProbe(value=10.0)


@pytest.fixture
def df_xy():
    return pd.DataFrame({"x": np.arange(1, 51), "y": np.arange(51, 101)})


@pytest.fixture
def df_mixed():
    return pd.DataFrame(
        {
            "int_col": np.arange(1, 21),
            "dbl_col": np.arange(20) + 0.1,
            "chr_col": list("abcdefghijklmnopqrst"),
            "lgl_col": [True, False] * 10,
        }
    )


@pytest.fixture
def matrix():
    return np.arange(100).reshape(20, 5)


@pytest.fixture
def chunks_10_rows():
    return [
        pd.DataFrame({"x": np.arange(1, 11), "y": np.arange(11, 21)}),
        pd.DataFrame({"x": np.arange(21, 31), "y": np.arange(31, 41)}),
        pd.DataFrame({"x": np.arange(41, 51), "y": np.arange(51, 61)}),
    ]


def list_dir(path: pathlib.Path) -> list[pathlib.Path]:
    return sorted(path.rglob("*"))
