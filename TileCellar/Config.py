""" The configuration bits of TileCellar.

TileCellar configuration is stored in JSON files, and is mostly a list of
tilesets to serve. There are examples of everything in this sample:

    {
      "logging": "info",
      "enabled": true,
      "scopes": {"/private": false},
      "capacity": 20,
      "tilesets": [
        {"name": "vt", "path": "vector_tiles.mbtiles"},
        ["dem", "file:///srv/tiles/dem.mbtiles"]
      ]
    }

- "tilesets" is an ordered list of tileset names and .mbtiles paths, each one
  either a dictionary with "name" and "path" or a two-item list. Relative
  paths are resolved against the location of the configuration. The first
  tileset with a given name wins, later ones are ignored. See TileCellar.Core
  for more on tilesets.

- "capacity" is the most tilesets that will be registered, default 20.
  Tilesets past the limit are logged and skipped.

- "enabled" is a boolean, or the string "true" or "false", deciding whether
  tiles are served at all. Default true.

- "scopes" is an optional dictionary of URL mount points to enabled flags,
  overriding "enabled" for requests under that point (WSGI SCRIPT_NAME).
  The longest matching mount point wins.

- "logging": one of "debug", "info", "warning", "error" or "critical", as
  described in Python's logging module: http://docs.python.org/howto/logging.html
"""

import logging
from os.path import join as pathjoin
from json import dumps as json_dumps
from urllib.parse import urljoin, urlparse

from . import Core

class Configuration:
    """ A complete site configuration, with a registry of tilesets.

        Attributes:

          registry:
            Core.Registry of tilesets.

          dirpath:
            Local filesystem path for this configuration,
            useful for expanding relative paths.

          enabled:
            Default for whether tiles are served at all.

          scopes:
            Dictionary of mount points to enabled flags.
    """
    def __init__(self, registry, dirpath, enabled=True, scopes=None):
        self.registry = registry
        self.dirpath = dirpath
        self.enabled = enabled
        self.scopes = scopes or dict()

    def isEnabled(self, script_name=''):
        """ Return true if tiles are served under the given mount point.
        """
        script_name = '/' + (script_name or '').strip('/')
        matches = []

        for (scope, enabled) in self.scopes.items():
            scope = '/' + scope.strip('/')

            if script_name == scope or script_name.startswith(scope.rstrip('/') + '/'):
                matches.append((len(scope), enabled))

        if matches:
            return max(matches)[1]

        return self.enabled

def parseFlag(value):
    """ Convert a configuration value to a boolean.

        Strings are true only if they say "true", in any case.
    """
    if isinstance(value, str):
        return value.strip().lower() == 'true'

    return bool(value)

def buildConfiguration(config_dict, dirpath='.'):
    """ Build a configuration dictionary into a Configuration object.

        The second argument is an optional dirpath that specifies where in the
        local filesystem the parsed dictionary originated, to make it possible
        to resolve relative paths. It might be a path or more likely a full
        URL including the "file://" prefix.

        Tilesets are registered but not opened; see Core.Registry.openAll().
    """
    if 'logging' in config_dict:
        level = config_dict['logging'].upper()

        if hasattr(logging, level):
            logging.basicConfig(level=getattr(logging, level))

    capacity = int(config_dict.get('capacity', Core.MAX_TILESETS))
    registry = Core.Registry(capacity)

    for tileset_item in config_dict.get('tilesets', []):
        name, path = _parseConfigTileset(tileset_item, dirpath)

        try:
            if not registry.register(name, path):
                logging.warning('TileCellar.Config.buildConfiguration() ignored second tileset named "%s"', name)

        except (Core.RegistryFull, Core.BadTilesetName) as e:
            logging.error('TileCellar.Config.buildConfiguration() skipped tileset: %s', e)

    enabled = parseFlag(config_dict.get('enabled', True))
    scopes = dict([(str(k), parseFlag(v)) for (k, v) in config_dict.get('scopes', {}).items()])

    return Configuration(registry, dirpath, enabled, scopes)

def enforcedLocalPath(relpath, dirpath, context='Path'):
    """ Return a forced local path, relative to a directory.

        Throw an error if the combination of path and directory seems to
        specify a remote path, e.g. "/path" and "http://example.com".

        Although a configuration file can be parsed from a remote URL, the
        MBTiles files themselves must be local to the server. In cases where
        we mix a remote configuration location with a local tileset, e.g.
        "http://example.com/tilecellar.cfg", the tileset path must include
        the "file://" prefix instead of an ambiguous absolute path such as
        "/srv/tiles/dem.mbtiles".
    """
    parsed_dir = urlparse(dirpath)
    parsed_rel = urlparse(relpath)

    if parsed_rel.scheme not in ('file', ''):
        raise Core.KnownUnknown('%s path must be a local file path, absolute or "file://", not "%s".' % (context, relpath))

    if parsed_dir.scheme not in ('file', '') and parsed_rel.scheme != 'file':
        raise Core.KnownUnknown('%s path must start with "file://" in a remote configuration ("%s" relative to %s)' % (context, relpath, dirpath))

    if parsed_rel.scheme == 'file':
        # file:// is an absolute local reference for the tileset.
        return parsed_rel.path

    if parsed_dir.scheme == 'file':
        # file:// is an absolute local reference for the directory.
        return urljoin(parsed_dir.path, parsed_rel.path)

    # nothing has a scheme, it's probably just a bunch of
    # dumb local paths, so let's see what happens next.
    return pathjoin(dirpath, relpath)

def _parseConfigTileset(tileset_item, dirpath):
    """ Used by buildConfiguration() to parse one tileset, return name and path.
    """
    if isinstance(tileset_item, dict):
        name, path = tileset_item.get('name'), tileset_item.get('path')

    elif isinstance(tileset_item, (list, tuple)) and len(tileset_item) == 2:
        name, path = tileset_item

    else:
        raise Core.KnownUnknown('Tileset must be a name and path, not: ' + json_dumps(tileset_item))

    if not isinstance(name, str) or not isinstance(path, str):
        raise Core.KnownUnknown('Tileset needs a string name and path: ' + json_dumps(tileset_item))

    return name, enforcedLocalPath(path, dirpath, 'Tileset "%s"' % name)
