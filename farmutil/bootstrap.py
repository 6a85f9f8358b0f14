"""
Assemble the worker pool: register the local workers, then connect to and
register each remote host, and only then start the scheduler.

The pool is assembled strictly sequentially (no threads). A failure on host N
must not leave host N+1 half opened, and the scheduler must not start
dispatching while the pool is still changing shape.

The assembly is all or nothing: if any host fails, every worker registered so
far is unregistered (closing its stream) before the original error is
re-raised.
"""

import platform

from loguru import logger

from farmutil.hosts import TunnelHost
from farmutil.streams import openStream
from farmutil.workers import LocalWorker, RemoteWorker

SSH_AUTH_HINT = (
  "Please ensure that passwordless authentication is enabled "
  "(e.g. using ssh-agent - see the documentation for more information)"
)

def connectRemoteWorker(name, descriptor, openStreamFunc, nodeName) :
  stream = openStreamFunc(descriptor)
  try :
    return RemoteWorker(name, stream, nodeName=nodeName)
  except Exception :
    stream.close()
    raise

def rollbackPool(scheduler, registered) :
  for aName in reversed(registered) :
    try :
      scheduler.unregisterWorker(aName)
    except Exception as err :
      logger.warning(f"Could not unregister worker {aName}: {err}")

def assemblePool(scheduler, localCount, descriptors, openStreamFunc=None, nodeName=None) :
  """
  Register `localCount` local workers (`wrk0`, `wrk1`, ...) and one remote
  worker per descriptor (`net0`, `net1`, ...) with `scheduler`, then start it.

  `openStreamFunc` maps a descriptor to an open stream (default:
  `farmutil.streams.openStream` with the default settings).
  """
  if openStreamFunc is None : openStreamFunc = openStream
  if nodeName is None : nodeName = platform.node()

  registered = []
  try :
    for i in range(localCount) :
      worker = LocalWorker(f"wrk{i}")
      scheduler.registerWorker(worker)
      registered.append(worker.name)

    for i, aDescriptor in enumerate(descriptors) :
      name = f"net{i}"
      logger.info(f"Connecting to {aDescriptor} as {name}")
      try :
        worker = connectRemoteWorker(name, aDescriptor, openStreamFunc, nodeName)
        try :
          scheduler.registerWorker(worker)
        except Exception :
          worker.close()
          raise
      except Exception as err :
        logger.error(f"Could not add {aDescriptor} to the worker pool: {err}")
        if isinstance(aDescriptor, TunnelHost) :
          logger.warning(SSH_AUTH_HINT)
        raise
      registered.append(name)
  except Exception :
    rollbackPool(scheduler, registered)
    raise

  scheduler.start()
