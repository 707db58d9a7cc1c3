from libb import Setting

Setting.unlock()

# host and port are replaced once the container is up
postgresql = Setting()
postgresql.drivername='postgresql'
postgresql.hostname='localhost'
postgresql.username='sqlbatch'
postgresql.password='sqlbatch'
postgresql.database='sqlbatch_test'
postgresql.port=5432
postgresql.timeout=30
postgresql.appname='sqlbatch_tests'

sqlite = Setting()
sqlite.drivername='sqlite'
sqlite.database=':memory:'

splitter = Setting()
splitter.terminator='//'
splitter.strict=False

Setting.lock()
