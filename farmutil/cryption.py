"""
The click commands used to encrypt (and decrypt) the `vault` files of a
farmutil configuration directory.

A vault holds the secrets (for example the `ssh_pass` used to answer ssh key
pass phrase prompts) for either all hosts (`config/globalConfig/vault`) or a
single host (`config/<host>/vault`).
"""

import click
from pathlib import Path
import sys

import farmutil.config
from farmutil.errors import ConfigError

@click.command()
@click.argument('path')
@click.pass_context
def encrypt(ctx, path) :
  """Encrypt the vault file PATH (in place)."""
  print(f"encrypting {path}")
  path = Path(path)
  if not path.is_file() :
    print(f"ERROR: the path [{path}] is not a file")
    sys.exit(1)
  with open(path, 'rb') as file :
    contents = file.read()
  try :
    passPhrase = farmutil.config.askForPassPhrase(isNew=True)
  except ConfigError as err :
    print(f"ERROR: {err}")
    sys.exit(1)
  eContents = farmutil.config.encrypt(contents, passPhrase)
  with open(path, 'w') as file :
    file.write(eContents)
  print("Encryption successful")

@click.command()
@click.argument('path')
@click.pass_context
def decrypt(ctx, path) :
  """Decrypt the vault file PATH (in place)."""
  print(f"decrypting {path}")
  path = Path(path)
  if not path.is_file() :
    print(f"ERROR: the path [{path}] is not a file")
    sys.exit(1)
  with open(path, 'r') as file :
    eContents = file.read()
  passPhrase = farmutil.config.askForPassPhrase()
  try :
    contents = farmutil.config.decrypt(eContents, passPhrase)
  except ConfigError as err :
    print(f"ERROR: {err}")
    sys.exit(1)
  with open(path, 'wb') as file :
    file.write(contents)
  print("Decryption successful")
