# -*- coding: utf-8 -*-
#
#    PsbtLib - Python Multisig PSBT Coordination Library
#    PyPi Setup Tool
#    © 2024 October - 1200 Web Development <http://1200wd.com/>
#
#    This program is free software: you can redistribute it and/or modify
#    it under the terms of the GNU Affero General Public License as
#    published by the Free Software Foundation, either version 3 of the
#    License, or (at your option) any later version.
#
#    This program is distributed in the hope that it will be useful,
#    but WITHOUT ANY WARRANTY; without even the implied warranty of
#    MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#    GNU Affero General Public License for more details.
#
#    You should have received a copy of the GNU Affero General Public License
#    along with this program.  If not, see <http://www.gnu.org/licenses/>.
#

from setuptools import setup
from codecs import open
import os

here = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(here, 'psbtlib', 'config', 'VERSION'), encoding='utf-8') as f:
      version = f.read().strip()

# Get the long description from the relevant file
readmetxt = ''
try:
      with open(os.path.join(here, 'README.rst'), encoding='utf-8') as f:
          readmetxt = f.read()
except FileNotFoundError:
      pass

kwargs = {}


install_requires = [
      'fastecdsa>=2.2.1;platform_system!="Windows"',
      'ecdsa>=0.17;platform_system=="Windows"',
      'pycryptodome>=3.14.1',
]

kwargs['install_requires'] = install_requires
kwargs['extras_require'] = {
      'test': ['pytest>=7.0'],
}

setup(
      name='psbtlib',
      version=version,
      description='Multisignature PSBT coordination library for Bitcoin',
      long_description=readmetxt,
      classifiers=[
            'Development Status :: 3 - Alpha',
            'Intended Audience :: Developers',
            'Intended Audience :: Financial and Insurance Industry',
            'License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)',
            'Natural Language :: English',
            'Operating System :: OS Independent',
            'Programming Language :: Python :: 3.8',
            'Programming Language :: Python :: 3.9',
            'Programming Language :: Python :: 3.10',
            'Programming Language :: Python :: 3.11',
            'Programming Language :: Python :: 3.12',
            'Topic :: Software Development :: Libraries :: Python Modules',
            'Topic :: Security :: Cryptography',
      ],
      url='http://github.com/1200wd/psbtlib',
      author='1200wd',
      author_email='info@1200wd.com',
      license='GNU3',
      packages=['psbtlib', 'psbtlib.config', 'psbtlib.tools'],
      package_data={
          'psbtlib': ['data/*.json', 'data/*.example'],
          'psbtlib.config': ['VERSION'],
      },
      entry_points={
          'console_scripts': ['psbt-coordinator=psbtlib.tools.psbt_coordinator:main']
      },
      test_suite='tests',
      include_package_data=True,
      keywords='bitcoin psbt multisig bip174 bip48 segwit p2wsh',
      zip_safe=False,
      **kwargs
)
