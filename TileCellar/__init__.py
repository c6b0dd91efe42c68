""" A quiet cellar for serving map tiles out of MBTiles files.

TileCellar is a small Python server application that serves vector and raster
map tiles stored in MBTiles archives (http://mbtiles.org). Tiles are looked up
by tileset name and XYZ coordinate, read straight from SQLite, and returned
with the right content type: gzipped protobuf for vector tilesets, images for
everything else.

Example configuration:

    {
      "tilesets": [
        {"name": "vt", "path": "vector_tiles.mbtiles"},
        {"name": "dem", "path": "dem.mbtiles"}
      ]
    }

Example tile URLs:

    http://localhost:8080/vt/14/8185/5449.pbf
    http://localhost:8080/dem/10/511/340.png
"""
import os.path

__version__ = open(os.path.join(os.path.dirname(__file__), 'VERSION')).read().strip()

import re
import logging

from os.path import dirname, realpath
from http.client import responses
from urllib.parse import urlparse
from urllib.request import urlopen
from wsgiref.headers import Headers
from json import load as json_load
from time import time

from ModestMaps.Core import Coordinate

from . import Core
from . import Config

# regular expression for PATH_INFO
_pathinfo_pat = re.compile(r'^/(?P<l>[^/]{1,%d})/(?P<z>[0-9]{1,10})/(?P<x>[0-9]{1,20})/(?P<y>[0-9]{1,20})\.(?P<e>[^/]*)$' % Core.MAX_NAME_LENGTH)

def parseConfig(configHandle):
    """ Parse a configuration file and return a Configuration object.

        Configuration could be a Python dictionary or a file formatted as JSON.
        See TileCellar.Config for the sections it may contain.

        The full path to the file is significant, used to
        resolve any relative tileset paths found in the configuration.
    """
    if isinstance(configHandle, dict):
        config_dict = configHandle
        dirpath = '.'
    else:
        scheme, host, path, p, q, f = urlparse(configHandle)

        if scheme == '':
            scheme = 'file'
            path = realpath(path)

        if scheme == 'file':
            with open(path) as file:
                config_dict = json_load(file)
        else:
            config_dict = json_load(urlopen(configHandle))

        dirpath = '%s://%s%s' % (scheme, host, dirname(path).rstrip('/') + '/')

    return Config.buildConfiguration(config_dict, dirpath)

def splitPathInfo(pathinfo):
    """ Converts a PATH_INFO string to tileset name and coordinate, or None.

        Example: "/tileset/0/0/0.pbf". The extension is required but
        may be anything, even empty; it is not used to pick a type.
        Zoom levels past Core.MAX_ZOOM are not tile paths.
    """
    path = _pathinfo_pat.match(pathinfo or '')

    if path is None:
        return None

    tileset, row, column, zoom = [path.group(p) for p in 'lyxz']

    if int(zoom) > Core.MAX_ZOOM:
        return None

    coord = Coordinate(int(row), int(column), int(zoom))

    return tileset, coord

def requestHandler(config, path_info, script_name=''):
    """ Generate status code, headers and body for a given tile request.

        Requires a configuration with an opened registry, and PATH_INFO
        (e.g. "/example/0/0/0.pbf"). Optional SCRIPT_NAME is checked
        against the configuration scopes.

        Raises Core.Declined for requests that other handlers should see.
    """
    start_time = time()

    if not config.isEnabled(script_name):
        raise Core.Declined('Tiles are not enabled under "%s"' % script_name)

    parts = splitPathInfo(path_info)

    if parts is None:
        raise Core.Declined('Not a tile path: "%s"' % path_info)

    name, coord = parts
    tileset = config.registry.lookup(name)

    if tileset is None:
        logging.debug('TileCellar.requestHandler() no tileset named "%s"', name)
        raise Core.Declined('"%s" is not a tileset I know about' % name)

    if not tileset.opened:
        logging.error('TileCellar.requestHandler() tileset "%s" is not open', name)
        return 500, Headers([]), b''

    tms = Core.flipRow(coord)

    try:
        content = tileset.archive.fetchTile(tms.zoom, tms.column, tms.row)
    except Core.StorageError as e:
        logging.error('TileCellar.requestHandler() %s', e)
        raise Core.Declined(str(e))

    if content is None:
        logging.debug('TileCellar.requestHandler() tile %s/%d/%d/%d not found', name, coord.zoom, coord.column, coord.row)

    status_code, headers, body = Core.composeResponse(tileset, content)
    logging.info('TileCellar.requestHandler() %s/%d/%d/%d %d (%d bytes) in %.3f', name, coord.zoom, coord.column, coord.row, status_code, len(body), time() - start_time)

    return status_code, headers, body

class WSGITileServer:
    """ Create a WSGI application that can handle requests from any server that talks WSGI.

        The WSGI application is an instance of this class. Example:

          app = WSGITileServer('/path/to/tilecellar.cfg')
          werkzeug.serving.run_simple('localhost', 8080, app)

        Tilesets are opened when the application is created, and closed
        by close(). Requests that aren't for tiles go to the optional
        fallback WSGI application, or get a plain 404.
    """

    def __init__(self, config, fallback=None):
        """ Initialize a callable WSGI instance.

            Config parameter can be a file path string for a JSON configuration
            file or a configuration object with a 'registry' property.
        """
        if isinstance(config, str):
            self.config = parseConfig(config)

        else:
            assert hasattr(config, 'registry'), 'Configuration object must have a registry.'
            self.config = config

        self.fallback = fallback

        self.config.registry.openAll()
        self.config.registry.freeze()

    def __call__(self, environ, start_response):
        """
        """
        path_info = environ.get('PATH_INFO', None)
        script_name = environ.get('SCRIPT_NAME', None)

        try:
            status_code, headers, content = requestHandler(self.config, path_info, script_name)
        except Core.Declined:
            if self.fallback is not None:
                return self.fallback(environ, start_response)

            return self._response(start_response, 404, b'Not found.\n', Headers([('Content-Type', 'text/plain')]))

        if environ.get('REQUEST_METHOD') == 'HEAD':
            start_response('%d %s' % (status_code, responses[status_code]), headers.items())
            return [b'']

        return self._response(start_response, status_code, content, headers)

    def _response(self, start_response, code, content=b'', headers=None):
        """
        """
        headers = headers or Headers([])
        headers.setdefault('Content-Length', str(len(content)))

        start_response('%d %s' % (code, responses[code]), headers.items())
        return [content]

    def close(self):
        """ Close every tileset.
        """
        self.config.registry.closeAll()
