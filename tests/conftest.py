import matplotlib
matplotlib.use('Agg')

import pytest

from params import KickParams


@pytest.fixture
def params():
    return KickParams()
