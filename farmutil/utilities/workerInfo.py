"""
List the workers of the assembled pool.

usage: farmutil run [options] workerInfo [--remote-only]
"""

from farmutil.plugins import Utility

class WorkerInfo(Utility) :

  def run(self, args) :
    remoteOnly = '--remote-only' in args
    scheduler  = self.services.scheduler
    workers    = [
      scheduler.workers[aName] for aName in scheduler.getWorkerNames()
    ]
    if remoteOnly :
      workers = [ aWorker for aWorker in workers if aWorker.isRemote ]

    print(f"Node {self.services.nodeName}: {len(workers)} workers")
    for aWorker in workers :
      if aWorker.isRemote :
        print(f"  {aWorker.name} : {aWorker.remoteHost} ({aWorker.coreCount} cores)")
      else :
        print(f"  {aWorker.name} : local")
    return 0

def getDescription() :
  return "List the workers of the assembled pool"

def createInstance(services) :
  return WorkerInfo(services)
