"""
The click command to run a utility on a pool of local and remote workers.

The pool is made up of (by default one per processor) local workers together
with one remote worker for each host given with the `-c` option (or listed in
a `-s` host file). Hosts are of the form:

  host.domain[:port]       for a direct connection to a running farmsrv
  user@host.domain[:path]  for an ssh connection which starts farmsrv in
                           `path` (by default `~/farmutil`)

Once every worker has been registered and the scheduler started, the utility
plugin is loaded, handed the `UtilityServices` and run with any remaining
arguments.
"""

import click
from click.core import ParameterSource
from loguru import logger
import os
import platform

from farmutil.bootstrap import assemblePool
from farmutil.config import loadConfig, settingsFor
from farmutil.errors import ModuleLoadError
from farmutil.hosts import collectHosts, parseHosts
from farmutil.logs import configureLogging
from farmutil.plugins import ClassRegistry, ModuleLoader, UtilityServices
from farmutil.resolver import FileResolver
from farmutil.scheduler import Scheduler
from farmutil.streams import openStream

def runUtility(
  utility, args, nprocs, hosts, hostFiles, searchPaths,
  nodeName, configPath
) :
  """
  Assemble the worker pool, then load and run `utility`. Returns the exit
  code. Any error is reported here, the scheduler is always stopped and the
  plugin always unloaded.
  """
  scheduler = Scheduler()
  try :
    config, secrets = loadConfig(configPath)
    gSettings, _ = settingsFor(config, secrets)

    resolver = FileResolver()
    for aPath in gSettings['searchPaths'] : resolver.addPath(aPath)
    for somePaths in searchPaths : resolver.addPaths(somePaths)

    utilityPath = resolver.resolveUtility(utility)
    if utilityPath is None :
      raise ModuleLoadError(utility, "could not find the utility along the search path")

    descriptors = parseHosts(
      collectHosts(hosts, hostFiles),
      defaultPort=int(gSettings['defaultPort']),
      defaultRemotePath=gSettings['defaultRemotePath']
    )

    def openHostStream(aDescriptor) :
      hSettings, hSecrets = settingsFor(config, secrets, aDescriptor.host)
      return openStream(aDescriptor, hSettings, hSecrets)

    assemblePool(
      scheduler, nprocs, descriptors,
      openStreamFunc=openHostStream, nodeName=nodeName
    )

    registry = ClassRegistry()
    loader   = ModuleLoader(registry=registry)
    with loader.load(utilityPath) as module :
      logger.info(f"Running {utility}: {loader.describe(module)}")
      services = UtilityServices(scheduler, resolver, registry, config, nodeName)
      instance = loader.create(module, services)
      exitCode = instance.run(list(args))
    if exitCode is None : exitCode = 0
    return int(exitCode)
  except Exception as err :
    logger.opt(exception=err).debug("Traceback of the critical exception")
    logger.error(f"Caught a critical exception: {err}")
    click.echo(f"Caught a critical exception: {err}", err=True)
    return 1
  finally :
    scheduler.stop()

def noArgsGiven(ctx) :
  return all(
    ctx.get_parameter_source(aParam.name) == ParameterSource.DEFAULT
      for aParam in ctx.command.params if isinstance(aParam, click.Option)
  )

@click.command(context_settings={
  'help_option_names'       : [ '-h', '--help' ],
  'ignore_unknown_options'  : True,
  'allow_interspersed_args' : False
})
@click.option('-a', '--add-path', 'paths', multiple=True,
  help="Add one or more (semicolon separated) entries to the search path"
)
@click.option('-p', '--procs', 'procs', type=int, default=None,
  help="Override the detected number of processors (0 for a scheduling only node)"
)
@click.option('-q', '--quiet', default=False, show_default=True,
  is_flag=True, help="Quiet mode - do not print any log messages to stdout"
)
@click.option('-c', '--connect', 'hosts', multiple=True,
  help="Semicolon separated list of hosts: host[:port] or user@host[:path]"
)
@click.option('-s', '--host-file', 'hostfiles', multiple=True,
  help="Connect to the hosts listed in a file (one per line, same format as -c)"
)
@click.option('-n', '--node-name', 'node', default=None,
  help="Assign a node name to this instance (default: host name)"
)
@click.option('-v', '--verbose', default=False, show_default=True,
  is_flag=True, help="Be more verbose"
)
@click.argument('utility', required=False)
@click.argument('args', nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run(ctx, paths, procs, quiet, hosts, hostfiles, node, verbose, utility, args) :
  """Run UTILITY (with ARGS) on a pool of local and remote workers."""

  if utility is None :
    if noArgsGiven(ctx) :
      click.echo(ctx.get_help())
      ctx.exit(0)
    click.echo("A utility name must be supplied!", err=True)
    ctx.exit(-1)

  nodeName = node or platform.node()
  nprocs   = procs if procs is not None else (os.cpu_count() or 1)
  configPath = (ctx.obj or {}).get('configPath', 'config')

  configureLogging(nodeName, verbose=verbose, quiet=quiet)

  ctx.exit(runUtility(
    utility, args, nprocs, hosts, hostfiles, paths,
    nodeName, configPath
  ))
