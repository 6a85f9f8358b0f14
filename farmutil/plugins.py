"""
Load the utility plugins run by `farmutil run`.

A utility plugin is a Python file which exports exactly two functions:

- `getDescription()`         : returns a one line description of the utility

- `createInstance(services)` : returns a new `Utility` instance given the
                               `UtilityServices` of this farmutil process

Plugins are loaded by path using a "platform" loader (by default
`PythonModulePlatform`) which provides `open`, `resolveSymbol` and `close`.
Once opened, a plugin's handle (a `UtilityModule`) is either "ready" (both
functions resolved) or it has been closed again; a half loaded plugin never
escapes `ModuleLoader.load`.
"""

import importlib.util
from itertools import count
from pathlib import Path
import re
import sys

from loguru import logger

from farmutil.errors import (
  ModuleClosedError, ModuleLoadError, SymbolResolutionError
)

DESCRIPTION_SYMBOL = 'getDescription'
FACTORY_SYMBOL     = 'createInstance'

#########################################################################
# Utilities and the services they are given

class Utility :
  """
  The base class of all utilities.

  Subclasses are discoverable by (class) name through the `ClassRegistry`
  once the plugin defining them has been loaded.
  """

  def __init__(self, services) :
    self.services = services

  def run(self, args) :
    """Run the utility with its command line `args`, returning the exit code."""
    raise NotImplementedError

class UtilityServices :
  """
  What a utility gets to work with: the started scheduler, the file resolver,
  the class registry, the loaded configuration and this node's name.
  """

  def __init__(self, scheduler, resolver, registry, config=None, nodeName=None) :
    self.scheduler = scheduler
    self.resolver  = resolver
    self.registry  = registry
    self.config    = config if config is not None else {}
    self.nodeName  = nodeName

class ClassRegistry :
  """
  A lookup from class name to class for every (loaded) subclass of the
  registered base classes.

  `refresh` must be called after loading new code so that any newly defined
  subclasses become constructible by name.
  """

  def __init__(self, baseClasses=(Utility,)) :
    self.baseClasses = list(baseClasses)
    self.classes     = {}
    self.refresh()

  def refresh(self) :
    # breadth first in creation order, so the newest class of a name wins
    classes = {}
    toVisit = list(self.baseClasses)
    while toVisit :
      aClass = toVisit.pop(0)
      # classes of unloaded plugins linger until garbage collected
      if aClass.__module__ not in sys.modules : continue
      classes[aClass.__name__] = aClass
      toVisit.extend(aClass.__subclasses__())
    self.classes = classes
    logger.debug(f"Class registry refreshed ({len(classes)} classes)")

  def getClassNames(self) :
    return sorted(self.classes.keys())

  def getClass(self, name) :
    if name not in self.classes :
      raise KeyError(f"Unknown class [{name}]")
    return self.classes[name]

  def createObject(self, name, *args, **kwargs) :
    return self.getClass(name)(*args, **kwargs)

#########################################################################
# The platform loader

class PythonModulePlatform :
  """
  Open Python source files as (uniquely named) modules.
  """

  moduleIds = count()

  def moduleNameFor(self, path) :
    stem = re.sub(r'\W', '_', Path(path).stem)
    return f"farmutil_dyn_{stem}_{next(self.moduleIds)}"

  def open(self, path) :
    path = Path(path)
    if not path.is_file() :
      raise ModuleLoadError(path, "No such file")
    moduleName = self.moduleNameFor(path)
    spec = importlib.util.spec_from_file_location(moduleName, str(path))
    if spec is None or spec.loader is None :
      raise ModuleLoadError(path, "Not a loadable Python module")
    module = importlib.util.module_from_spec(spec)
    sys.modules[moduleName] = module
    try :
      spec.loader.exec_module(module)
    except Exception as err :
      sys.modules.pop(moduleName, None)
      raise ModuleLoadError(path, f"{err.__class__.__name__}: {err}") from err
    return module

  def resolveSymbol(self, handle, name) :
    symbol = getattr(handle, name, None)
    if symbol is None :
      raise LookupError(f"undefined symbol: {name}")
    if not callable(symbol) :
      raise LookupError(f"symbol {name} is not callable")
    return symbol

  def close(self, handle) :
    sys.modules.pop(handle.__name__, None)

#########################################################################
# Loaded plugins

class UtilityModule :
  """
  One opened plugin. Use `ModuleLoader.load` to create one.

  Can be used as a context manager, in which case the plugin is unloaded when
  the `with` block ends.
  """

  def __init__(self, path, platform) :
    self.path           = str(path)
    self.platform       = platform
    self.handle         = None
    self.state          = 'unopened'
    self.getDescription = None
    self.createInstance = None

    try :
      self.handle = platform.open(path)
    except ModuleLoadError :
      raise
    except Exception as err :
      raise ModuleLoadError(path, str(err)) from err
    self.state = 'opened'

    try :
      self.getDescription = self.getSymbol(DESCRIPTION_SYMBOL)
      self.createInstance = self.getSymbol(FACTORY_SYMBOL)
    except Exception :
      self.close()
      raise
    self.state = 'ready'

  def __repr__(self) :
    return f"UtilityModule({self.path!r}, {self.state})"

  def __enter__(self) :
    return self

  def __exit__(self, excType, excValue, traceback) :
    self.close()

  def getSymbol(self, name) :
    try :
      return self.platform.resolveSymbol(self.handle, name)
    except Exception as err :
      raise SymbolResolutionError(self.path, name, str(err)) from err

  def isReady(self) :
    return self.state == 'ready'

  def checkReady(self) :
    if not self.isReady() :
      raise ModuleClosedError(f"The plugin \"{self.path}\" has been unloaded")

  def describe(self) :
    self.checkReady()
    return self.getDescription()

  def create(self, services) :
    self.checkReady()
    return self.createInstance(services)

  def close(self) :
    if self.state == 'closed' : return
    handle = self.handle
    self.state          = 'closed'
    self.handle         = None
    self.getDescription = None
    self.createInstance = None
    if handle is not None :
      self.platform.close(handle)
      logger.debug(f"Unloaded plugin \"{self.path}\"")

class ModuleLoader :
  """
  Load utility plugins, refreshing the class registry after each load.
  """

  def __init__(self, platform=None, registry=None) :
    self.platform = platform if platform is not None else PythonModulePlatform()
    self.registry = registry if registry is not None else ClassRegistry()

  def load(self, path) :
    logger.debug(f"Loading plugin \"{path}\"")
    module = UtilityModule(path, self.platform)
    self.registry.refresh()
    return module

  def describe(self, module) :
    return module.describe()

  def create(self, module, services) :
    return module.create(services)

  def unload(self, module) :
    module.close()
