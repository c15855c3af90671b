import pytest

from nostrcal.registry import ModelRegistry, default_registry


@pytest.fixture
def registry() -> ModelRegistry:
    """A fresh registry holding every calendar kind."""
    return default_registry()
