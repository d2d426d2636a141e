# commands.py

import json
import os

import click
from flask import current_app
from flask.cli import with_appcontext
from werkzeug.datastructures import FileStorage

from extensions import db


@click.command('init-db')
@with_appcontext
def init_db():
    """Create the buyer tables"""
    db.create_all()
    click.echo('Database tables created.')


@click.command('import-buyers')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--owner-id', required=True, help='User the imported buyers belong to')
@with_appcontext
def import_buyers(path, owner_id):
    """Import buyers from a CSV file and print the import result"""
    csv_import_service = current_app.services.get('csv_import')

    with open(path, 'rb') as stream:
        upload = FileStorage(stream=stream, filename=os.path.basename(path), content_type='text/csv')
        result = csv_import_service.import_from_file(upload, owner_id)

    click.echo(json.dumps(result.to_dict(), indent=2, default=str))
    if not result.success:
        raise SystemExit(1)


@click.command('export-buyers')
@click.option('--user-id', required=True, help='User running the export')
@click.option('--role', default='user', show_default=True, help="'admin' exports every owner's buyers")
@click.option('--output', type=click.Path(dir_okay=False, writable=True), help='Write to a file instead of stdout')
@click.option('--city', help='Only buyers in this city')
@click.option('--status', help='Only buyers with this status')
@with_appcontext
def export_buyers(user_id, role, output, city, status):
    """Export buyers as CSV"""
    buyer_service = current_app.services.get('buyer')

    query_result = buyer_service.parse_query({'city': city, 'status': status})
    if query_result.is_failure:
        raise click.BadParameter('; '.join(query_result.metadata['errors']))

    result = buyer_service.export_buyers_csv(query_result.data, user_id, role)
    if output:
        with open(output, 'w', encoding='utf-8', newline='') as handle:
            handle.write(result.data)
        click.echo(f"Exported {result.metadata['count']} buyers to {output}")
    else:
        click.echo(result.data, nl=False)


def init_app(app):
    """Register commands with the Flask app"""
    app.cli.add_command(init_db)
    app.cli.add_command(import_buyers)
    app.cli.add_command(export_buyers)
