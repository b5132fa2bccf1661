import logging
import sys
from pathlib import Path

# Ensure top-level modules import for tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from board import build_board
from constants import DEFAULT_BOARD_HEIGHT, DEFAULT_BOARD_WIDTH, DEFAULT_PEG_ROWS, DEFAULT_SLOT_COUNT


@pytest.fixture
def default_board():
    """The stock 375x500 board with 10 peg rows and 6 slots."""

    return build_board(DEFAULT_BOARD_WIDTH, DEFAULT_BOARD_HEIGHT, DEFAULT_PEG_ROWS, DEFAULT_SLOT_COUNT)


@pytest.fixture
def restore_root_logger():
    """Close the handlers setup_logging installs and reset the root level."""

    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(saved_level)
