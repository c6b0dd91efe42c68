""" The core class bits of TileCellar.

Two important classes can be found here.

Tileset represents one named MBTiles archive. It keeps a reference to the
MBTiles.Archive that reads it, plus the format read from its metadata once
the archive has been opened. Tilesets are represented in the configuration
file as a list of dictionaries:

    {
      "tilesets":
      [
        {"name": "example-name", "path": "example.mbtiles"},
        ...
      ]
    }

- "name" is used as the first segment of a tile URL. It may not contain a
  slash and may be at most 39 characters long.
- "path" is the location of the .mbtiles file, relative to the configuration.

The public-facing URL of a single tile for this tileset might look like this:

    http://example.com/tiles/example-name/0/0/0.pbf

The filename extension is never consulted: responses are typed by the
"format" key in the archive metadata. Vector tilesets ("pbf") are served
as gzipped protobuf, and coordinates with no data get a canned empty tile
instead of a 404. Raster tilesets ("png", "jpg", "webp" or anything else)
are served as stored, and missing tiles are a 404.

Registry is a small, bounded, ordered collection of tilesets. It is built
and opened once before any requests are served, then frozen.
"""

import logging
from wsgiref.headers import Headers

from ModestMaps.Core import Coordinate

from . import MBTiles

MAX_TILESETS = 20
MAX_NAME_LENGTH = 39
MAX_PATH_LENGTH = 254

# 2**62 still fits in a SQLite integer
MAX_ZOOM = 62

# gzipped, empty protobuf: served verbatim for vector tiles with no data.
EMPTY_TILE = bytes(bytearray([
    0x1F, 0x8B, 0x08, 0x00, 0xFA, 0x78, 0x18, 0x5E, 0x00, 0x03, 0x93, 0xE2,
    0xE3, 0x62, 0x8F, 0x8F, 0x4F, 0xCD, 0x2D, 0x28, 0xA9, 0xD4, 0x68, 0x50,
    0xA8, 0x60, 0x02, 0x00, 0x64, 0x71, 0x44, 0x36, 0x10, 0x00, 0x00, 0x00]))

VECTOR_TYPE = 'application/x-protobuf'

_raster_types = {'png': 'image/png', 'jpg': 'image/jpeg', 'webp': 'image/webp'}

class KnownUnknown(Exception):
    """ There are known unknowns. That is to say, there are things that we now know we don't know.

        This exception gets thrown in a couple places where common mistakes are made.
    """
    pass

class RegistryFull(KnownUnknown):
    """ No room left in the registry for another tileset.
    """
    pass

class BadTilesetName(KnownUnknown):
    """ A tileset name or path that can't be registered.
    """
    pass

class ArchiveError(KnownUnknown):
    """ An MBTiles file that can't be opened or doesn't look like a tileset.
    """
    pass

class MetadataMissing(ArchiveError):
    """ An MBTiles file with no "format" in its metadata table.
    """
    pass

class StorageError(Exception):
    """ Reading a tile from an open archive failed.
    """
    pass

class Declined(Exception):
    """ Not a request for us; let some other handler try.

        Raised by TileCellar.requestHandler() when a path doesn't look like
        a tile, names an unknown tileset, falls in a disabled scope, or
        can't be read from storage.
    """
    pass

class Tileset:
    """ A named MBTiles archive.

        Attributes:

          name:
            Name used in tile URLs.

          path:
            Local filesystem path to the .mbtiles file.

          archive:
            MBTiles.Archive instance for reading tiles.

          format:
            Value of "format" in the archive metadata, None until opened.

          opened:
            True once the archive is open and its format is known.
    """
    def __init__(self, name, path):
        self.name = name
        self.path = path
        self.archive = MBTiles.Archive(path)
        self.format = None
        self.opened = False

    @property
    def is_vector(self):
        return self.format == 'pbf'

    def open(self):
        """ Open the archive and read its format, raise ArchiveError on failure.
        """
        self.archive.open()
        self.format = self.archive.readFormat()
        self.opened = True

    def close(self):
        self.archive.close()
        self.opened = False

    def __repr__(self):
        return '<Tileset %s at %s>' % (self.name, self.path)

class Registry:
    """ Bounded collection of tilesets, in registration order.

        Tilesets are registered from configuration, opened with openAll()
        and then the registry is frozen for the rest of its life. Once
        frozen, it can be read from any number of threads without locks.
    """
    def __init__(self, capacity=MAX_TILESETS):
        self.capacity = capacity
        self.frozen = False
        self._tilesets = []

    def __len__(self):
        return len(self._tilesets)

    def __iter__(self):
        return iter(list(self._tilesets))

    def names(self):
        return [tileset.name for tileset in self._tilesets]

    def register(self, name, path):
        """ Add a new tileset, return true if it was added.

            An existing name is left alone and false is returned. Raises
            RegistryFull when the capacity has been reached, BadTilesetName
            for names or paths that could never be served.
        """
        if self.frozen:
            raise KnownUnknown('Tileset registry is frozen, can\'t add "%s".' % name)

        if not name or '/' in name or len(name) > MAX_NAME_LENGTH:
            raise BadTilesetName('Tileset name must be 1-%d characters with no "/", not "%s".' % (MAX_NAME_LENGTH, name))

        if not path or len(path) > MAX_PATH_LENGTH:
            raise BadTilesetName('Tileset path for "%s" must be 1-%d characters long.' % (name, MAX_PATH_LENGTH))

        if self.lookup(name) is not None:
            return False

        if len(self._tilesets) >= self.capacity:
            raise RegistryFull('Maximum of %d tilesets already registered, can\'t add "%s".' % (self.capacity, name))

        self._tilesets.append(Tileset(name, path))
        return True

    def lookup(self, name):
        """ Return the tileset with exactly this name, or None.
        """
        for tileset in self._tilesets:
            if tileset.name == name:
                return tileset

        return None

    def openAll(self):
        """ Open every registered tileset, return a dictionary of name to success.

            A tileset that fails to open is logged and left unopened,
            and the rest are opened anyway.
        """
        outcomes = {}

        for tileset in self._tilesets:
            if tileset.opened:
                outcomes[tileset.name] = True
                continue

            try:
                tileset.open()
            except ArchiveError as e:
                logging.error('TileCellar.Core.Registry.openAll() could not open "%s": %s', tileset.name, e)
                tileset.close()
                outcomes[tileset.name] = False
            else:
                kind = tileset.is_vector and 'vector' or 'raster'
                logging.info('TileCellar.Core.Registry.openAll() opened %s tileset "%s" (%s)', kind, tileset.name, tileset.format)
                outcomes[tileset.name] = True

        return outcomes

    def freeze(self):
        self.frozen = True

    def closeAll(self):
        """ Close every tileset, safe to call more than once.
        """
        for tileset in self._tilesets:
            tileset.close()

def flipRow(coord):
    """ Convert a coordinate between XYZ and TMS row numbering.

        MBTiles stores rows counted up from the south, URLs count
        down from the north. The flip is its own inverse.
    """
    return Coordinate(2**coord.zoom - coord.row - 1, coord.column, coord.zoom)

def getTypeByFormat(format):
    """ Get mime-type for a tileset format string.

        Unknown formats are assumed to already be a mime-type.
    """
    if format == 'pbf':
        return VECTOR_TYPE

    return _raster_types.get(format, format)

def composeResponse(tileset, content):
    """ Get status code, headers, and body for a tile read from a tileset.

        Content is the tile data from storage, or None if there wasn't any.
    """
    if content is None and not tileset.is_vector:
        return 404, Headers([]), b''

    if content is None:
        content = EMPTY_TILE

    headers = Headers([('Content-Type', getTypeByFormat(tileset.format))])

    if tileset.is_vector:
        # vector tiles are stored gzipped
        headers['Content-Encoding'] = 'gzip'

    headers['Content-Length'] = str(len(content))

    return 200, headers, content
