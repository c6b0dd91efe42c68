"""
Usage: gunicorn --options tilecellar_gunicorn:app

tilecellar_gunicorn is a wsgi wrapper, using gunicorn, for TileCellar that serves
the tilesets listed in tilecellar.cfg next to this file. For example:

	http://localhost:8000/vt/14/8185/5449.pbf

Without --preload each worker imports this module, and opens its own
connections to the .mbtiles files. With --preload, connections made in the
master are left behind and each worker makes new ones.

For a complete list of options, please consult: gunicorn --help

See also: http://github.com/benoitc/gunicorn
"""

import atexit
import os

import TileCellar

app = TileCellar.WSGITileServer(os.path.join(os.path.dirname(__file__), 'tilecellar.cfg'))

atexit.register(app.close)
