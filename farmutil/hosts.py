"""
Parse the worker descriptors supplied with the `-c` and `-s` options of the
`run` command.

A descriptor has one of two forms:

  host.domain[:port]           a direct (tcp) connection to an already
                               running farmsrv

  user@host.domain[:path]      an ssh connection which starts farmsrv in
                               `path` on the remote host (default
                               `~/farmutil`)

Descriptors are joined with `;`. Empty descriptors are ignored.
"""

from dataclasses import dataclass
from pathlib import Path
import re

from farmutil.errors import (
  HostListFileOpenError, InvalidHostSpec, InvalidPort
)

DEFAULT_PORT        = 7554
DEFAULT_REMOTE_PATH = "~/farmutil"

@dataclass(frozen=True)
class DirectHost :
  host : str
  port : int = DEFAULT_PORT

  def __str__(self) :
    return f"{self.host}:{self.port}"

@dataclass(frozen=True)
class TunnelHost :
  user       : str
  host       : str
  remotePath : str = DEFAULT_REMOTE_PATH

  def __str__(self) :
    return f"{self.user}@{self.host}:{self.remotePath}"

def tokenize(text, delimiters) :
  """
  Split `text` on any of the characters in `delimiters`, dropping empty
  tokens.
  """
  pattern = "[" + re.escape(delimiters) + "]"
  return [ aToken for aToken in re.split(pattern, text) if aToken ]

def parsePort(spec, portStr) :
  # ascii digits only, as int() also takes signs and underscores
  if not re.fullmatch(r"[0-9]+", portStr) :
    raise InvalidPort(spec, portStr)
  port = int(portStr, 10)
  if port < 1 or 65535 < port :
    raise InvalidPort(spec, portStr)
  return port

def parseHostSpec(spec, defaultPort=DEFAULT_PORT, defaultRemotePath=DEFAULT_REMOTE_PATH) :
  """
  Parse one descriptor into either a `TunnelHost` (the descriptor contains an
  `@`) or a `DirectHost`.
  """
  if '@' in spec :
    tokens = tokenize(spec, "@:")
    if len(tokens) == 2 :
      return TunnelHost(tokens[0], tokens[1], defaultRemotePath)
    if len(tokens) == 3 :
      return TunnelHost(tokens[0], tokens[1], tokens[2])
    raise InvalidHostSpec(spec)

  tokens = tokenize(spec, ":")
  if len(tokens) == 1 :
    return DirectHost(tokens[0], defaultPort)
  if len(tokens) == 2 :
    return DirectHost(tokens[0], parsePort(spec, tokens[1]))
  raise InvalidHostSpec(spec)

def parseHosts(text, defaultPort=DEFAULT_PORT, defaultRemotePath=DEFAULT_REMOTE_PATH) :
  """
  Parse a `;` separated list of descriptors, preserving their order.
  """
  if not text : return []
  return [
    parseHostSpec(aSpec, defaultPort, defaultRemotePath)
      for aSpec in tokenize(text, ";")
  ]

def readHostFile(path) :
  """
  Read a host list file (one descriptor per line) and return its descriptors
  as a `;` separated string. Blank lines and lines starting with `#` are
  skipped.
  """
  try :
    with open(Path(path), 'r', encoding='utf-8') as hostFile :
      lines = hostFile.readlines()
  except OSError as err :
    raise HostListFileOpenError(path, err.strerror or str(err)) from err
  except UnicodeDecodeError as err :
    raise HostListFileOpenError(path, f"not a text file ({err.reason})") from err

  hosts = []
  for aLine in lines :
    aLine = aLine.strip()
    if not aLine or aLine.startswith('#') : continue
    hosts.append(aLine)
  return ";".join(hosts)

def collectHosts(hostArgs=(), hostFiles=()) :
  """
  Concatenate the hosts given on the command line with those listed in the
  host files (in that order).
  """
  networkHosts = [ aHostArg for aHostArg in hostArgs if aHostArg ]
  for aHostFile in hostFiles :
    fileHosts = readHostFile(aHostFile)
    if fileHosts : networkHosts.append(fileHosts)
  return ";".join(networkHosts)
