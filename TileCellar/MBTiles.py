""" Read-only access to MBTiles files.

MBTiles is a SQLite database with two tables, described at http://mbtiles.org:

    CREATE TABLE metadata (name TEXT, value TEXT);
    CREATE TABLE tiles (zoom_level INTEGER, tile_column INTEGER,
                        tile_row INTEGER, tile_data BLOB);

The metadata table is used as a key/value store for settings. The one key
required here is "format": pbf for gzipped vector tiles, or an image format
such as png, jpg or webp.

Tile rows are numbered TMS-style, up from the south; see Core.flipRow().

Each thread gets its own SQLite connection to an archive, and a forked
worker process starts over with fresh connections instead of sharing its
parent's. Connections are opened read-only, so a missing file is an error
and not a new empty database.
"""

import logging
import sqlite3
import threading
from os import getpid
from os.path import exists
from urllib.parse import quote

from . import Core

# sqlite3 result code for "database schema has changed"
SQLITE_SCHEMA = 17

# schema changes are retried this many times
SCHEMA_ATTEMPTS = 3

_int64 = (-2**63, 2**63 - 1)

def tileset_exists(db):
    """ Return true if the database appears to have the right tables.
    """
    try:
        db.execute('SELECT name, value FROM metadata LIMIT 1')
        db.execute('SELECT zoom_level, tile_column, tile_row, tile_data FROM tiles LIMIT 1')
    except sqlite3.DatabaseError:
        return False

    return True

def _schema_changed(error):
    if getattr(error, 'sqlite_errorcode', None) == SQLITE_SCHEMA:
        return True

    return 'schema has changed' in str(error)

class Archive:
    """ One MBTiles file, opened read-only.

        Attributes:

          path:
            Local filesystem path to the .mbtiles file.
    """
    def __init__(self, path):
        self.path = path

        self._local = threading.local()
        self._connections = []
        self._connections_lock = threading.Lock()
        self._pid = None

    def _connect(self):
        """ Make a new read-only connection for the calling thread.
        """
        href = 'file:%s?mode=ro' % quote(self.path)

        try:
            db = sqlite3.connect(href, uri=True, check_same_thread=False)
        except sqlite3.Error as e:
            raise Core.ArchiveError('Couldn\'t open "%s": %s' % (self.path, e))

        with self._connections_lock:
            self._connections.append(db)

        return db

    def _db(self):
        """ Get the calling thread's connection, making one if necessary.
        """
        with self._connections_lock:
            if self._pid != getpid():
                # forked since the last connection was made; the parent's
                # connections belong to the parent.
                self._local = threading.local()
                self._connections = []
                self._pid = getpid()

        db = getattr(self._local, 'db', None)

        if db is None:
            db = self._local.db = self._connect()

        return db

    def _readable(self):
        """ Get the calling thread's connection for reading tiles or metadata.

            Raises Core.StorageError if a new connection can't be made.
        """
        try:
            return self._db()
        except Core.ArchiveError as e:
            raise Core.StorageError(str(e))

    def _forget(self):
        """ Close and forget the calling thread's connection.
        """
        db = getattr(self._local, 'db', None)
        self._local.db = None

        if db is not None:
            with self._connections_lock:
                if db in self._connections:
                    self._connections.remove(db)
            db.close()

    def open(self):
        """ Open the archive and check that it looks like a tileset.

            Raises Core.ArchiveError if it doesn't.
        """
        if not exists(self.path):
            raise Core.ArchiveError('No such file: "%s"' % self.path)

        db = self._db()

        if not tileset_exists(db):
            self._forget()
            raise Core.ArchiveError('"%s" is not an MBTiles file' % self.path)

    def readFormat(self):
        """ Return the "format" value from metadata.

            Raises Core.MetadataMissing if there is none.
        """
        try:
            row = self._db().execute("SELECT value FROM metadata WHERE name='format'").fetchone()
        except sqlite3.Error as e:
            raise Core.MetadataMissing('Couldn\'t find format in "%s": %s' % (self.path, e))

        if row is None or row[0] is None:
            raise Core.MetadataMissing('Couldn\'t find format in "%s"' % self.path)

        return str(row[0])

    def readMetadata(self):
        """ Return all metadata as a dictionary.
        """
        try:
            rows = self._readable().execute('SELECT name, value FROM metadata').fetchall()
        except sqlite3.Error as e:
            raise Core.StorageError('Couldn\'t read metadata from "%s": %s' % (self.path, e))

        return dict(rows)

    def fetchTile(self, zoom, column, row):
        """ Return tile data for a TMS coordinate, or None if there isn't any.

            Raises Core.StorageError if the database can't be read.
        """
        for value in (zoom, column, row):
            if not _int64[0] <= value <= _int64[1]:
                return None

        q = 'SELECT tile_data FROM tiles WHERE zoom_level=? AND tile_column=? AND tile_row=?'

        for attempt in range(SCHEMA_ATTEMPTS):
            try:
                content = self._readable().execute(q, (zoom, column, row)).fetchone()

            except sqlite3.Error as e:
                if _schema_changed(e) and attempt + 1 < SCHEMA_ATTEMPTS:
                    logging.debug('TileCellar.MBTiles.Archive.fetchTile() schema changed in %s, retrying', self.path)
                    self._forget()
                    continue

                raise Core.StorageError('Couldn\'t read %d/%d/%d from "%s": %s' % (zoom, column, row, self.path, e))

            else:
                if content is None or content[0] is None:
                    return None

                return bytes(content[0])

    def close(self):
        """ Close every connection made by every thread.
        """
        with self._connections_lock:
            connections, self._connections = self._connections, []
            self._local = threading.local()

        for db in connections:
            db.close()
