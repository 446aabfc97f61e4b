import logging
import os
import sys

import click
from flask import Flask

from routes.blueprints import api_bp
from services.competition_loader import load_competition_file
from services.exceptions import ServiceError

# --- Configuration ---
BASE_DIR = os.path.abspath(os.path.dirname(__file__))
COMPETITION_DIR = os.environ.get('COMPETITION_DIR', os.path.join(BASE_DIR, 'data', 'competitions'))
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


def create_app(config=None):
    app = Flask(__name__)
    app.config['COMPETITION_DIR'] = COMPETITION_DIR
    app.config['LOG_LEVEL'] = LOG_LEVEL
    app.config['BASE_DIR'] = BASE_DIR
    if config:
        app.config.update(config)
    # Keep document key order in responses
    app.json.sort_keys = False

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    # Register Blueprints
    app.register_blueprint(api_bp)

    # --- CLI commands ---
    @app.cli.command("validate")
    @click.argument('files', nargs=-1, required=True, type=click.Path())
    def validate_command(files):
        """Load each competition document and report whether it is valid."""
        failed = False
        for path in files:
            try:
                load_competition_file(path)
                click.echo(f"{path}: OK")
            except (ServiceError, OSError) as e:
                failed = True
                message = e.message if isinstance(e, ServiceError) else str(e)
                click.echo(f"{path}: {message}")
        if failed:
            sys.exit(1)

    return app


app = create_app()

if __name__ == '__main__':
    app.run(debug=True)
