"""
The byte streams used to reach a remote farmsrv.

- `SocketStream` : a plain tcp connection to an already running farmsrv.

- `ShellStream`  : an ssh session (driven by Python `pexpect` so that key
                   pass phrase prompts can be answered programmatically)
                   which starts farmsrv on the remote host and talks to it
                   over the session's stdin/stdout.

Both streams provide the same `readline`, `write` and `close` methods. Any
failure while opening (or reading from) a stream is raised as a
`TransportOpenError` chained to the underlying socket or pexpect error.
"""

import shlex
import socket

import jinja2
from loguru import logger
import pexpect

from farmutil.errors import ConfigError, TransportOpenError
from farmutil.hosts import DirectHost

DEFAULT_CONNECT_TIMEOUT = 30

DEFAULT_REMOTE_COMMAND = "bash -c 'cd {{ remotePath }}; . setpath.sh; farmsrv -ls'"

PASSPHRASE_PROMPT = "Enter passphrase for key"

# farmsrv announces itself with a single line JSON object
HANDSHAKE_PATTERN = r"(?m)^\{[^\r\n]*\}"

def normalizeTimeout(timeout) :
  # 0 and None both mean "wait forever"
  if not timeout : return None
  return float(timeout)

class SocketStream :

  def __init__(self, host, port, timeout=DEFAULT_CONNECT_TIMEOUT) :
    self.host = host
    self.port = port
    timeout   = normalizeTimeout(timeout)
    logger.debug(f"Connecting to {host}:{port} (timeout: {timeout})")
    try :
      self.sock = socket.create_connection((host, port), timeout=timeout)
    except TimeoutError as err :
      raise TransportOpenError(
        f"Timed out connecting to {host}:{port} after {timeout} seconds"
      ) from err
    except OSError as err :
      raise TransportOpenError(f"Could not connect to {host}:{port}: {err}") from err
    self.rFile = self.sock.makefile('rb')

  def __str__(self) :
    return f"{self.host}:{self.port}"

  def readline(self) :
    try :
      data = self.rFile.readline()
    except OSError as err :
      raise TransportOpenError(f"Lost connection to {self}: {err}") from err
    try :
      return data.decode()
    except UnicodeDecodeError as err :
      raise TransportOpenError(f"Garbled data from {self}: {err}") from err

  def write(self, data) :
    if isinstance(data, str) : data = data.encode()
    try :
      self.sock.sendall(data)
    except OSError as err :
      raise TransportOpenError(f"Lost connection to {self}: {err}") from err

  def close(self) :
    if self.sock is None : return
    logger.debug(f"Closing the connection to {self}")
    self.rFile.close()
    try :
      self.sock.shutdown(socket.SHUT_RDWR)
    except OSError :
      pass  # already disconnected by the peer
    self.sock.close()
    self.sock = None

class ShellStream :

  def __init__(
    self, user, host, remoteCommand,
    sshOpts="", passPhrase=None, timeout=DEFAULT_CONNECT_TIMEOUT
  ) :
    self.user    = user
    self.host    = host
    self.timeout = normalizeTimeout(timeout)
    self.pending = None
    self.proc    = None

    sshArgs = shlex.split(sshOpts) + [ f"{user}@{host}", remoteCommand ]
    logger.debug(f"Running [ssh {' '.join(sshArgs)}]")
    try :
      self.proc = pexpect.spawn(
        'ssh', sshArgs, encoding='utf-8', echo=False, timeout=self.timeout
      )
    except pexpect.ExceptionPexpect as err :
      raise TransportOpenError(f"Could not start ssh for {self}: {err}") from err

    try :
      self.waitForServer(passPhrase)
    except TransportOpenError :
      self.close()
      raise

  def __str__(self) :
    return f"{self.user}@{self.host}"

  def waitForServer(self, passPhrase) :
    """
    Wait for the remote farmsrv to announce itself, answering (at most once)
    any key pass phrase prompt on the way.
    """
    sentPassPhrase = False
    while True :
      pResult = self.proc.expect([
        PASSPHRASE_PROMPT,
        "[Pp]assword:",
        "Permission denied",
        "Host key verification failed",
        HANDSHAKE_PATTERN,
        pexpect.EOF,
        pexpect.TIMEOUT
      ], timeout=self.timeout)
      if pResult == 0 :
        if not passPhrase or sentPassPhrase :
          raise TransportOpenError(f"ssh to {self} requires a (valid) key pass phrase")
        self.proc.sendline(passPhrase)
        sentPassPhrase = True
      elif pResult in (1, 2, 3) :
        raise TransportOpenError(
          f"Authentication failed for {self}: {self.proc.after.strip()}"
        )
      elif pResult == 4 :
        self.pending = self.proc.after
        return
      elif pResult == 5 :
        raise TransportOpenError(
          f"The remote command exited before farmsrv started on {self}: "
          f"{self.proc.before.strip()}"
        )
      else :
        raise TransportOpenError(
          f"Timed out waiting for farmsrv on {self} after {self.timeout} seconds"
        )

  def readline(self) :
    if self.pending is not None :
      aLine = self.pending + "\n"
      self.pending = None
      return aLine
    try :
      return self.proc.readline()
    except pexpect.ExceptionPexpect as err :
      raise TransportOpenError(f"Lost the ssh session to {self}: {err}") from err

  def write(self, data) :
    try :
      self.proc.send(data)
    except (OSError, pexpect.ExceptionPexpect) as err :
      raise TransportOpenError(f"Lost the ssh session to {self}: {err}") from err

  def close(self) :
    if self.proc is None : return
    logger.debug(f"Closing the ssh session to {self}")
    self.proc.close(force=True)
    self.proc = None

def renderRemoteCommand(descriptor, settings=None) :
  """
  Expand the (Jinja2) `remoteCommand` template for a tunnel descriptor.
  """
  settings = settings or {}
  cmdTemplate = settings.get('remoteCommand') or DEFAULT_REMOTE_COMMAND
  try :
    template = jinja2.Template(cmdTemplate)
    return template.render(
      user=descriptor.user,
      host=descriptor.host,
      remotePath=descriptor.remotePath
    )
  except jinja2.TemplateError as err :
    raise ConfigError(f"Could not render the remoteCommand template [{cmdTemplate}]: {err}") from err

def openStream(descriptor, settings=None, secrets=None) :
  """
  Open the stream appropriate to a (parsed) host descriptor.

  The `settings` and `secrets` dicts are the (merged) configuration for the
  descriptor's host (see `farmutil.config.settingsFor`).
  """
  settings = settings or {}
  secrets  = secrets  or {}
  timeout  = settings.get('connectTimeout', DEFAULT_CONNECT_TIMEOUT)
  if isinstance(descriptor, DirectHost) :
    return SocketStream(descriptor.host, descriptor.port, timeout=timeout)
  return ShellStream(
    descriptor.user, descriptor.host,
    renderRemoteCommand(descriptor, settings),
    sshOpts=settings.get('sshOpts', "") or "",
    passPhrase=secrets.get('ssh_pass'),
    timeout=timeout
  )
