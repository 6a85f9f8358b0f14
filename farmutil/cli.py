
import click

# see: https://click.palletsprojects.com/en/8.1.x/

import farmutil.run
import farmutil.cryption

@click.group()
@click.option('--config', default='config', show_default=True,
  help="Configuration directory path"
)
@click.pass_context
def cli(ctx, config) :
  ctx.ensure_object(dict)
  ctx.obj['configPath'] = config

cli.add_command(farmutil.run.run)
cli.add_command(farmutil.cryption.encrypt)
cli.add_command(farmutil.cryption.decrypt)
