"""
Locate utility plugins (and any other resources) along an ordered list of
search paths.
"""

import os
from pathlib import Path
import platform

from farmutil.hosts import tokenize

UTILITIES_DIR = 'utilities'

def defaultSearchPaths() :
  """
  The current directory, the installed farmutil package and (on linux)
  `/usr/share/farmutil`.
  """
  paths = [ Path.cwd(), Path(__file__).resolve().parent ]
  if platform.system() == 'Linux' :
    paths.append(Path('/usr/share/farmutil'))
  return paths

class FileResolver :

  def __init__(self, paths=None) :
    self.paths = []
    if paths is None : paths = defaultSearchPaths()
    for aPath in paths : self.addPath(aPath)

  def addPath(self, aPath) :
    aPath = Path(os.path.expanduser(str(aPath)))
    if aPath not in self.paths : self.paths.append(aPath)

  def addPaths(self, somePaths) :
    """
    Add a `;` separated list of paths.
    """
    for aPath in tokenize(somePaths, ";") : self.addPath(aPath)

  def resolve(self, name) :
    """
    Return the first `<path>/<name>` or `<path>/utilities/<name>` which
    exists, or None.
    """
    for aPath in self.paths :
      for aCandidate in ( aPath / name, aPath / UTILITIES_DIR / name ) :
        if aCandidate.exists() : return aCandidate
    return None

  def resolveUtility(self, name) :
    """
    Resolve a utility name given on the command line. An existing file is used
    as is, otherwise `<name>.py` is searched for along the search paths.
    """
    if Path(name).is_file() : return Path(name)
    fileName = name if name.endswith('.py') else name + '.py'
    return self.resolve(fileName)
