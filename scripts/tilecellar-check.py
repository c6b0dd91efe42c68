#!/usr/bin/env python
"""tilecellar-check.py will check your tilesets.

This script is intended to be run directly. It reads a configuration, opens
every tileset in it, and lists each one with its format and status:

    tilecellar-check.py -c tilecellar.cfg

Exits with status 1 if any tileset could not be opened, so it can be used
to test a configuration before restarting a server.

See `tilecellar-check.py --help` for more information.
"""

from sys import stderr, stdout, exit
from optparse import OptionParser

import TileCellar
from TileCellar.Core import KnownUnknown, StorageError

parser = OptionParser(usage="""%prog [options]

Opens every tileset in a TileCellar configuration and reports on it.
No tiles are served.

See `%prog --help` for info.""")

parser.set_defaults(config='tilecellar.cfg', verbose=False)

parser.add_option('-c', '--config', dest='config',
                  help='Path to configuration file, default "tilecellar.cfg".')

parser.add_option('-v', '--verbose', dest='verbose',
                  help='Also print every metadata key and value.',
                  action='store_true')

def checkTilesets(config, verbose=False, out=stdout):
    """ Open and describe every tileset, return the number that failed.
    """
    registry = config.registry
    outcomes = registry.openAll()
    failures = 0

    try:
        for tileset in registry:
            if not outcomes[tileset.name]:
                print('%s\tFAILED\t%s' % (tileset.name, tileset.path), file=out)
                failures += 1
                continue

            kind = tileset.is_vector and 'vector' or 'raster'
            print('%s\t%s\t%s\t%s' % (tileset.name, tileset.format, kind, tileset.path), file=out)

            if verbose:
                try:
                    metadata = tileset.archive.readMetadata()
                except StorageError as e:
                    print('\t%s' % e, file=out)
                else:
                    for (key, value) in sorted(metadata.items()):
                        print('\t%s: %s' % (key, value), file=out)
    finally:
        registry.closeAll()

    return failures

if __name__ == '__main__':
    options, args = parser.parse_args()

    try:
        config = TileCellar.parseConfig(options.config)
    except (IOError, ValueError, KnownUnknown) as e:
        print('Error loading %s: %s' % (options.config, e), file=stderr)
        exit(1)

    if checkTilesets(config, options.verbose):
        exit(1)
