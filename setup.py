#!/usr/bin/env python

from setuptools import setup


version = open('TileCellar/VERSION', 'r').read().strip()


requires = ['ModestMaps >=1.4.7', 'Werkzeug']

tests_require = ['pytest', 'Pillow']


setup(name='TileCellar',
      version=version,
      description='A quiet cellar for serving map tiles out of MBTiles files.',
      python_requires='>=3.7',
      install_requires=requires,
      extras_require={'test': tests_require},
      packages=['TileCellar'],
      scripts=['scripts/tilecellar-server.py', 'scripts/tilecellar-check.py'],
      package_data={'TileCellar': ['VERSION']},
      license='BSD')
