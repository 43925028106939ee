from sqlalchemy import event

from fuel_ledger.core.db import async_engine, use_utc_session_time_zone


class RecordingCursor:
    def __init__(self, statements):
        self.statements = statements
        self.closed = False

    def execute(self, statement):
        self.statements.append(statement)

    def close(self):
        self.closed = True


class RecordingConnection:
    def __init__(self):
        self.statements = []
        self.cursors = []

    def cursor(self):
        cursor = RecordingCursor(self.statements)
        self.cursors.append(cursor)
        return cursor


def test_new_connections_use_utc_session_time_zone():
    connection = RecordingConnection()

    use_utc_session_time_zone(connection, None)

    assert connection.statements == ["SET time_zone = '+00:00'"]
    assert all(cursor.closed for cursor in connection.cursors)


def test_time_zone_hook_is_mysql_only():
    # The test database is SQLite, which has no session time zone
    assert not event.contains(async_engine.sync_engine, "connect", use_utc_session_time_zone)
