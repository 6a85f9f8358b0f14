"""
The workers which make up a farmutil worker pool.

- `LocalWorker`  : a processing slot on this machine.

- `RemoteWorker` : a farmsrv instance on another machine, reached over an
                   already opened stream (see `farmutil.streams`).

A remote worker binds to its stream with a one line JSON handshake. The
farmsrv speaks first, announcing itself with:

  { "type" : "server", "host" : ..., "coreCount" : ... }

(any non JSON lines before this, for example login banners, are ignored) and
the worker answers with:

  { "type" : "worker", "workerName" : ..., "host" : ... }
"""

import json
import platform

from loguru import logger

from farmutil.errors import TransportOpenError, WorkerRegistrationError

class LocalWorker :

  isRemote = False

  def __init__(self, name) :
    self.name      = name
    self.coreCount = 1

  def __repr__(self) :
    return f"LocalWorker({self.name!r})"

  def close(self) :
    pass

class RemoteWorker :

  isRemote = True

  def __init__(self, name, stream, nodeName=None) :
    self.name       = name
    self.stream     = stream
    self.nodeName   = nodeName or platform.node()
    self.coreCount  = 1
    self.remoteHost = None
    self.handshake()

  def __repr__(self) :
    return f"RemoteWorker({self.name!r}, {str(self.stream)!r})"

  def readHandshake(self) :
    while True :
      aLine = self.stream.readline()
      if not aLine :
        raise TransportOpenError(
          f"Connection to {self.stream} closed before the farmsrv handshake"
        )
      aLine = aLine.strip()
      if not aLine.startswith('{') :
        logger.debug(f"[{self.name}] ignoring [{aLine}]")
        continue
      try :
        return json.loads(aLine)
      except json.JSONDecodeError as err :
        raise WorkerRegistrationError(
          f"Malformed handshake from {self.stream}: {aLine!r}"
        ) from err

  def handshake(self) :
    serverInfo = self.readHandshake()
    if not isinstance(serverInfo, dict) or serverInfo.get('type') != 'server' :
      raise WorkerRegistrationError(
        f"Unexpected handshake from {self.stream}: {serverInfo!r}"
      )
    try :
      self.coreCount = int(serverInfo.get('coreCount', 1))
    except (TypeError, ValueError) as err :
      raise WorkerRegistrationError(
        f"Invalid core count from {self.stream}: {serverInfo.get('coreCount')!r}"
      ) from err
    self.remoteHost = serverInfo.get('host', str(self.stream))

    self.stream.write(json.dumps({
      'type'       : 'worker',
      'workerName' : self.name,
      'host'       : self.nodeName
    }) + "\n")
    logger.info(
      f"Connected to {self.remoteHost} as {self.name} ({self.coreCount} cores)"
    )

  def close(self) :
    if self.stream is None : return
    self.stream.close()
    self.stream = None
