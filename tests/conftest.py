import logging
import pathlib
import site

import pytest

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def batch_logging(caplog):
    """Capture sqlbatch debug logging so failing tests show the executed SQL."""
    caplog.set_level(logging.DEBUG, logger='sqlbatch')
    yield


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.sqlite',
    'tests.fixtures.postgres',
]
