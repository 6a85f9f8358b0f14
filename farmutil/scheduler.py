"""
The scheduler which owns the worker pool.

Workers are registered (by name) while the pool is being assembled. Once
`start` has been called the pool is fixed: no further workers may be
registered until the scheduler is stopped.

Dispatching work to the workers is up to the utility being run.
"""

from loguru import logger

from farmutil.errors import WorkerRegistrationError

class Scheduler :

  def __init__(self) :
    self.workers = {}
    self.started = False

  def registerWorker(self, worker) :
    if self.started :
      raise WorkerRegistrationError(
        f"Cannot register {worker.name}: the scheduler is already running"
      )
    if worker.name in self.workers :
      raise WorkerRegistrationError(f"A worker named {worker.name} is already registered")
    self.workers[worker.name] = worker
    logger.debug(f"Registered worker {worker.name}")

  def unregisterWorker(self, name) :
    """
    Remove (and close) the worker `name`.
    """
    worker = self.workers.pop(name, None)
    if worker is None :
      raise WorkerRegistrationError(f"No worker named {name} is registered")
    worker.close()
    logger.debug(f"Unregistered worker {name}")
    return worker

  def getWorkerNames(self) :
    return list(self.workers.keys())

  def getCoreCount(self) :
    return sum(aWorker.coreCount for aWorker in self.workers.values())

  def start(self) :
    if self.started : return
    self.started = True
    logger.info(
      f"Scheduler started with {len(self.workers)} workers "
      f"({self.getCoreCount()} cores)"
    )

  def stop(self) :
    for aName in reversed(self.getWorkerNames()) :
      try :
        self.unregisterWorker(aName)
      except Exception as err :
        logger.warning(f"Could not close worker {aName}: {err}")
    if self.started : logger.debug("Scheduler stopped")
    self.started = False
