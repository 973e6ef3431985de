import pytest

from builders import make_glb


@pytest.fixture
def glb():
    return make_glb()
