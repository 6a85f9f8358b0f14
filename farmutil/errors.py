"""
The exceptions raised while bootstrapping a farmutil worker pool.

Every one of these is fatal to the bootstrap; the `run` command reports them
and exits with a non-zero status.
"""

class FarmUtilError(Exception) :
  """Base class for all farmutil errors."""

class ConfigError(FarmUtilError) :
  pass

class InvalidHostSpec(FarmUtilError) :
  def __init__(self, spec, reason=None) :
    self.spec = spec
    msg = f"Invalid host specification '{spec}'!"
    if reason : msg = f"{msg} ({reason})"
    super().__init__(msg)

class InvalidPort(InvalidHostSpec) :
  def __init__(self, spec, port) :
    self.port = port
    super().__init__(spec, f"could not parse the port [{port}]")

class HostListFileOpenError(FarmUtilError) :
  def __init__(self, path, reason) :
    self.path = path
    super().__init__(f"Could not open host file [{path}]: {reason}")

class TransportOpenError(FarmUtilError) :
  pass

class WorkerRegistrationError(FarmUtilError) :
  pass

class ModuleLoadError(FarmUtilError) :
  def __init__(self, path, platformMessage) :
    self.path            = str(path)
    self.platformMessage = platformMessage
    super().__init__(f"Error while loading plugin \"{path}\": {platformMessage}")

class SymbolResolutionError(FarmUtilError) :
  def __init__(self, path, symbolName, platformMessage) :
    self.path            = str(path)
    self.symbolName      = symbolName
    self.platformMessage = platformMessage
    super().__init__(
      f"Could not resolve symbol \"{symbolName}\" in \"{path}\": {platformMessage}"
    )

class ModuleClosedError(FarmUtilError) :
  pass
