"""
filexfer - Single File Transfer over TCP

A sender streams one file, preceded by a "name size" header, to a
listening receiver which recreates it under the same name.
"""

__version__ = '0.1.0'
