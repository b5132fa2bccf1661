import pytest

pygame = pytest.importorskip("pygame")

import visualization


def test_module_imports_without_a_display():
    assert visualization.Visualizer
    assert not pygame.display.get_init()
