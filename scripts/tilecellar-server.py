#!/usr/bin/env python
"""tilecellar-server.py will serve your tilesets.

This script is intended to be run directly from the command line.

It is intended for direct use only during development or for debugging TileCellar.
In production, hand TileCellar.WSGITileServer to a real WSGI server such as
gunicorn or mod_wsgi.

To use this built-in server, install werkzeug and then run tilecellar-server.py:

    tilecellar-server.py

By default the script looks for a config file named tilecellar.cfg in the current
directory and then serves tiles on http://127.0.0.1:8080/.

You can then open your browser and view a url like:

    http://localhost:8080/vt/0/0/0.pbf

The above tileset of 'vt' (defined in the tilecellar.cfg) will return the
top-level tile from its .mbtiles file, or an empty vector tile.

Check tilecellar-server.py --help to change these defaults.
"""

if __name__ == '__main__':
    from optparse import OptionParser
    import os, sys

    parser = OptionParser()
    parser.add_option("-c", "--config", dest="file", default="tilecellar.cfg",
        help="the path to the tilecellar config")
    parser.add_option("-i", "--ip", dest="ip", default="127.0.0.1",
        help="the IP address to listen on")
    parser.add_option("-p", "--port", dest="port", type="int", default=8080,
        help="the port number to listen on")
    (options, args) = parser.parse_args()

    from werkzeug.serving import run_simple
    import TileCellar

    if not os.path.exists(options.file):
        print("Config file not found. Use -c to pick a tilecellar config file.", file=sys.stderr)
        sys.exit(1)

    app = TileCellar.WSGITileServer(config=options.file)

    try:
        run_simple(options.ip, options.port, app, threaded=True)
    finally:
        app.close()
