"""
Configure the loguru sinks of a farmutil process: a per node log file and
(unless quiet) stdout.
"""

import sys

from loguru import logger

from farmutil import __version__

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} {level: <8} [{extra[node]}] {message}"

def logFileFor(nodeName) :
  return f"farmutil.{nodeName}.log"

def configureLogging(nodeName, verbose=False, quiet=False) :
  level = "DEBUG" if verbose else "INFO"

  # Remove the default (stderr) sink then add our own
  logger.remove()
  logger.configure(extra={ 'node' : nodeName })

  logPath = logFileFor(nodeName)
  logger.add(logPath, level=level, format=LOG_FORMAT)
  if not quiet :
    logger.add(sys.stdout, level=level, format=LOG_FORMAT)

  logger.info(f"farmutil version {__version__}")
  return logPath
