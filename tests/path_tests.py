from unittest import TestCase

from TileCellar import splitPathInfo

class PathTests(TestCase):

    def assertCoordinate(self, parts, name, zoom, column, row):
        self.assertNotEqual(parts, None)
        self.assertEqual(parts[0], name)
        self.assertEqual((parts[1].zoom, parts[1].column, parts[1].row), (zoom, column, row))

    def test_tile_path(self):
        self.assertCoordinate(splitPathInfo('/world/3/2/1.pbf'), 'world', 3, 2, 1)
        self.assertCoordinate(splitPathInfo('/dem/10/511/340.png'), 'dem', 10, 511, 340)

    def test_extension_is_ignored(self):
        '''Any extension will do, even none at all after the dot'''

        self.assertCoordinate(splitPathInfo('/vt/5/10/24.'), 'vt', 5, 10, 24)
        self.assertCoordinate(splitPathInfo('/vt/5/10/24.jpg'), 'vt', 5, 10, 24)
        self.assertCoordinate(splitPathInfo('/vt/5/10/24.tar.gz'), 'vt', 5, 10, 24)

    def test_name_characters(self):
        self.assertCoordinate(splitPathInfo('/my-tiles_v2.1/0/0/0.pbf'), 'my-tiles_v2.1', 0, 0, 0)
        self.assertCoordinate(splitPathInfo('/' + 'n' * 39 + '/1/1/1.png'), 'n' * 39, 1, 1, 1)

    def test_not_tiles(self):
        for path in ('/world/3/2/1', '/onlyname', '/', '', None, 'world/3/2/1.pbf',
                     '/world/3/2.pbf', '/world/3/2/1/0.pbf', '//3/2/1.pbf',
                     '/a/b/3/2/1.pbf', '/world/3/2/1.pbf/more', '/' + 'n' * 40 + '/1/1/1.png'):
            self.assertEqual(splitPathInfo(path), None, path)

    def test_bad_numbers(self):
        for path in ('/world/-3/2/1.pbf', '/world/x/2/1.pbf', '/world/3/-2/1.pbf',
                     '/world/3/2/-1.pbf', '/world/3.5/2/1.pbf', '/world/3/2/1e2.pbf'):
            self.assertEqual(splitPathInfo(path), None, path)

    def test_zoom_limit(self):
        '''Zoom levels too deep for a 64-bit row number are not tiles'''

        self.assertCoordinate(splitPathInfo('/vt/62/0/0.pbf'), 'vt', 62, 0, 0)

        for path in ('/vt/63/0/0.pbf', '/vt/4000000000/0/0.pbf', '/vt/' + '9' * 11 + '/0/0.pbf',
                     '/vt/3/' + '1' * 21 + '/0.pbf', '/vt/3/0/' + '1' * 5000 + '.pbf'):
            self.assertEqual(splitPathInfo(path), None, path[:40])
