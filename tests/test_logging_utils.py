import logging

from pathfinder._logging_utils import configure_logging, verbosity_to_level


def test_verbosity_to_level() -> None:
    assert verbosity_to_level(0) == logging.WARNING
    assert verbosity_to_level(1) == logging.INFO
    assert verbosity_to_level(2) == logging.DEBUG
    assert verbosity_to_level(5) == logging.DEBUG


def test_configure_logging_sets_package_level() -> None:
    root = logging.getLogger()
    package = logging.getLogger("pathfinder")
    previous = (root.level, package.level)
    try:
        logger = configure_logging(1)
        assert logger is package
        assert logger.level == logging.INFO
        assert root.level == logging.INFO
    finally:
        root.setLevel(previous[0])
        package.setLevel(previous[1])
