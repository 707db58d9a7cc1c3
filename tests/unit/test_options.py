import pytest
from sqlbatch.options import ConnectionOptions, SplitterOptions


def test_connection_defaults():
    """Test default initialization"""
    options = ConnectionOptions(
        hostname='testhost',
        username='testuser',
        password='testpass',
        database='testdb',
        port=1234,
        timeout=30
    )

    assert options.drivername == 'postgresql'
    assert options.appname is not None


def test_connection_validation():
    """Test validation rules"""
    with pytest.raises(ValueError):
        ConnectionOptions(
            drivername='invalid',
            hostname='testhost',
            username='testuser',
            password='testpass',
            database='testdb',
        )

    with pytest.raises(ValueError):
        ConnectionOptions(drivername='postgresql', hostname='testhost')


def test_sqlite_options():
    """Test SQLite options validation"""
    options = ConnectionOptions(
        drivername='sqlite',
        database='test.db'
    )
    assert options.drivername == 'sqlite'
    assert options.database == 'test.db'

    with pytest.raises(ValueError):
        ConnectionOptions(drivername='sqlite')


def test_splitter_defaults():
    options = SplitterOptions()
    assert options.terminator == ';'
    assert options.delimiter_keyword == 'DELIMITER'
    assert options.strict is True
    assert options.keep_comments is True
    assert options.keep_terminators is False
    assert options.slash_terminates is False


def test_splitter_validation():
    with pytest.raises(ValueError):
        SplitterOptions(terminator='')
    with pytest.raises(ValueError):
        SplitterOptions(terminator='; ')
    with pytest.raises(ValueError):
        SplitterOptions(delimiter_keyword='SET TERM')


def test_delimiter_keyword_is_uppercased():
    assert SplitterOptions(delimiter_keyword='delimiter').delimiter_keyword == 'DELIMITER'
    assert SplitterOptions(delimiter_keyword=None).delimiter_keyword is None


if __name__ == '__main__':
    __import__('pytest').main([__file__])
