from tempfile import mkdtemp
from sqlite3 import connect
from shutil import rmtree
from io import BytesIO
import gzip
import os

from PIL import Image

def create_tileset(filename, format, tiles=None, metadata=None):
    '''
    Helper method to write an MBTiles file with the given format and tiles,
    a dictionary of TMS (zoom, column, row) tuples to tile data.
    '''
    db = connect(filename)

    db.execute('CREATE TABLE metadata (name TEXT, value TEXT, PRIMARY KEY (name))')
    db.execute('CREATE TABLE tiles (zoom_level INTEGER, tile_column INTEGER, tile_row INTEGER, tile_data BLOB)')
    db.execute('CREATE UNIQUE INDEX coord ON tiles (zoom_level, tile_column, tile_row)')

    if format is not None:
        db.execute('INSERT INTO metadata VALUES (?, ?)', ('format', format))

    for (name, value) in (metadata or {}).items():
        db.execute('INSERT INTO metadata VALUES (?, ?)', (name, value))

    for ((zoom, column, row), data) in (tiles or {}).items():
        db.execute('INSERT INTO tiles VALUES (?, ?, ?, ?)', (zoom, column, row, data))

    db.commit()
    db.close()

    return filename

def create_temp_dir():
    '''
    Helper method to create a temp directory. Caller is responsible
    for deleting it once done, see remove_temp_dir()
    '''
    return mkdtemp(prefix='tilecellar-')

def remove_temp_dir(dirname):
    rmtree(dirname, ignore_errors=True)

def vector_tile(content=b'\x1a\x00'):
    '''
    Helper method to make a gzipped vector tile like an MBTiles file holds.
    '''
    return gzip.compress(content)

def png_tile(color=(255, 0, 0)):
    '''
    Helper method to make a real 256x256 PNG tile.
    '''
    buff = BytesIO()
    Image.new('RGB', (256, 256), color).save(buff, 'PNG')
    return buff.getvalue()

def jpeg_tile(color=(0, 0, 255)):
    buff = BytesIO()
    Image.new('RGB', (256, 256), color).save(buff, 'JPEG')
    return buff.getvalue()

def tileset_path(dirname, name):
    return os.path.join(dirname, name + '.mbtiles')
