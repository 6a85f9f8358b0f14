
import base64
import copy
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
import getpass
from pathlib import Path
import secrets
import yaml

from loguru import logger

from farmutil.errors import ConfigError

GLOBAL_CONFIG = 'globalConfig'
VAULT_NAME    = 'vault'
VAULT_HEADER  = 'farmutil-encrypted;1.0;Scrypt;Fernet'

DEFAULT_SETTINGS = {
  'defaultPort'       : 7554,
  'defaultRemotePath' : '~/farmutil',
  'connectTimeout'    : 30,
  'sshOpts'           : '',
  'remoteCommand'     : None,
  'searchPaths'       : []
}

def mergeYamlData(yamlData, newYamlData, thePath) :
  """ This is a generic Python merge. It is a *deep* merge and handles
  both dictionaries and arrays """

  if yamlData is None :
    raise ConfigError(f"Cannot merge into nothing at {thePath}")

  if type(yamlData) != type(newYamlData) :
    raise ConfigError(
      f"Incompatible types {type(yamlData)} and {type(newYamlData)} while trying to merge YAML data at {thePath}"
    )

  if type(yamlData) is dict :
    for key, value in newYamlData.items() :
      if key not in yamlData or yamlData[key] is None :
        yamlData[key] = copy.deepcopy(value)
      elif type(yamlData[key]) is dict :
        mergeYamlData(yamlData[key], value, thePath+'.'+key)
      elif type(yamlData[key]) is list :
        for aValue in value :
          yamlData[key].append(copy.deepcopy(aValue))
      else :
        yamlData[key] = copy.deepcopy(value)
  elif type(yamlData) is list :
    for value in newYamlData :
      yamlData.append(copy.deepcopy(value))
  else :
    raise ConfigError(f"YamlData MUST be either a dictionary or an array (at {thePath})")

def initializeConfig(aConfigPath) :
  return {
    GLOBAL_CONFIG : {
      'configPath' : str(aConfigPath),
      'hostList'   : []
    }
  }

def initializeSecrets() :
  return {
    GLOBAL_CONFIG : {}
  }

def loadConfigDir(aDir, config, secrets, thePath, passPhrase=None) :
  """
  Merge every *file* in `aDir` (in alphabetical order) into `config`, or, for
  the `vault` file, (once decrypted) into `secrets`.
  """
  items = sorted(aDir.iterdir())
  for anItem in items :
    if not anItem.is_file() : continue
    with open(anItem, 'r') as cf :
      contents = cf.read()
    if anItem.name != VAULT_NAME :
      try :
        newConfig = yaml.safe_load(contents)
      except yaml.YAMLError as err :
        raise ConfigError(f"Could not parse the configuration file [{anItem}]: {err}") from err
      if newConfig is not None :
        mergeYamlData(config, newConfig, thePath)
    elif passPhrase :
      newSecrets = yaml.safe_load(decrypt(contents, passPhrase))
      if newSecrets is not None :
        mergeYamlData(secrets, newSecrets, 'secret-'+thePath)

def loadGlobalConfiguration(config, secrets, passPhrase=None) :

  # Start by loading the global configuration from any *file* in
  # `config/globalConfig`. Files are merged in alphabetical order.

  configPath = Path(config[GLOBAL_CONFIG]['configPath'])
  if not configPath.is_dir() :
    logger.debug(f"No configuration directory [{configPath}], using the defaults")
    return

  globalConfigDir = configPath / GLOBAL_CONFIG
  if globalConfigDir.is_dir() :
    loadConfigDir(globalConfigDir, config[GLOBAL_CONFIG], secrets[GLOBAL_CONFIG], GLOBAL_CONFIG, passPhrase)

  # Now determine the list of hosts
  hostList = []
  for anItem in configPath.iterdir() :
    if not anItem.is_dir() : continue
    if anItem.name == GLOBAL_CONFIG : continue
    hostList.append(anItem.name)
  hostList.sort()
  config[GLOBAL_CONFIG]['hostList'] = hostList

def loadConfigurationFor(config, secrets, passPhrase=None) :
  configPath = Path(config[GLOBAL_CONFIG]['configPath'])
  for aHost in config[GLOBAL_CONFIG]['hostList'] :
    if aHost not in config :
      config[aHost]  = {}
      secrets[aHost] = {}
    hostPath = configPath / aHost
    if hostPath.is_dir() :
      loadConfigDir(hostPath, config[aHost], secrets[aHost], aHost, passPhrase)

def hasVaults(configPath) :
  vaults = Path(configPath).glob('*/'+VAULT_NAME)
  if len(list(vaults)) < 1 :
    return False
  return True

def askForPassPhrase(isNew=False) :
  passPhrase = getpass.getpass("Vault pass phrase: ")
  if isNew :
    passPhrase2 = getpass.getpass("Confirm pass phrase: ")
    if passPhrase != passPhrase2 :
      raise ConfigError("Pass phrases do not match")
  return passPhrase

# The next couple of definitions provide our encrypt/decript methods.
# These are based on the article:
# https://www.thepythoncode.com/article/encrypt-decrypt-files-symmetric-python#file-encryption-with-password

def getKey(salt, passPhrase) :
  kdf  = Scrypt(salt=salt, length=32, n=2**14, r=8, p=1)
  return base64.urlsafe_b64encode(kdf.derive(passPhrase.encode()))

def encrypt(contents, passPhrase) :
  if isinstance(contents, str) : contents = contents.encode()
  saltBytes = secrets.token_bytes(16)
  saltStr   = base64.b16encode(saltBytes).decode()
  key       = getKey(saltBytes, passPhrase)
  fernet    = Fernet(key)

  eContents = fernet.encrypt(contents)
  eContents = base64.urlsafe_b64decode(eContents)
  eContents = base64.b16encode(eContents).decode()

  eList = [
    VAULT_HEADER,
    saltStr
  ]

  eLen = len(eContents)
  cur  = 0
  while cur < eLen :
    eList.append(eContents[cur : cur + 50])
    cur += 50

  return "\n".join(eList)

def decrypt(eContents, passPhrase) :
  eList = eContents.split()
  if len(eList) < 3 or eList[0] != VAULT_HEADER :
    raise ConfigError("This is not a farmutil encrypted file!")

  saltStr   = eList[1]
  saltBytes = base64.b16decode(saltStr.encode('utf-8'))
  key       = getKey(saltBytes, passPhrase)
  fernet    = Fernet(key)

  eContents = "".join(eList[2:])
  eContents = base64.b16decode(eContents)
  eContents = base64.urlsafe_b64encode(eContents)
  try :
    contents  = fernet.decrypt(eContents)
  except InvalidToken :
    raise ConfigError(
      "The pass phrase provided does not correspond to the pass phrase which encrypted the message"
    ) from None

  return contents

def loadConfig(configPath, askPassPhrase=askForPassPhrase) :
  """
  Load the global and per host configuration (and, if any vaults exist, the
  secrets) found in the `configPath` directory.
  """
  config     = initializeConfig(configPath)
  secrets    = initializeSecrets()
  passPhrase = None
  if Path(configPath).is_dir() and hasVaults(configPath) :
    passPhrase = askPassPhrase()
  loadGlobalConfiguration(config, secrets, passPhrase=passPhrase)
  loadConfigurationFor(config, secrets, passPhrase=passPhrase)
  logger.debug("Configuration:\n" + yaml.dump(config))
  return (config, secrets)

def settingsFor(config, secrets, aHost=None) :
  """
  Return the (settings, secrets) which apply to `aHost`: the defaults, merged
  with the global configuration, merged with the host's own configuration.
  """
  settings = copy.deepcopy(DEFAULT_SETTINGS)
  settings['searchPaths'] = []
  hostSecrets = {}
  for aKey in ( GLOBAL_CONFIG, aHost ) :
    if aKey is None : continue
    if aKey in config :
      for key, value in config[aKey].items() :
        settings[key] = copy.deepcopy(value)
    if aKey in secrets :
      for key, value in secrets[aKey].items() :
        hostSecrets[key] = copy.deepcopy(value)
  return (settings, hostSecrets)
