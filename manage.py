from certmaker.app import create_app, db
import os

from flask_migrate import Migrate
from flask.cli import FlaskGroup
import click
from flask import current_app
from certmaker.shared.certificates import (
    find_orphan_certificates,
    find_unreferenced_pdfs,
    generate_from_template,
    generate_programmatic,
)
from certmaker.shared.errors import CertificateError, TemplateAssetMissingError
from certmaker.models import CertificateTemplate, Student


migrate = Migrate()


def create_certmaker_app():
    app = create_app()
    migrate.init_app(app, db)
    return app


cli = FlaskGroup(create_app=create_certmaker_app)


@cli.command("gen_cert")
@click.option("--student", "email", required=True, help="Student email")
@click.option("--course", "course_name", required=True)
@click.option("--template", "template_id", default=None, help="Template id")
def gen_cert(email: str, course_name: str, template_id: str | None):
    """Generate a certificate for a student."""
    student = (
        db.session.query(Student)
        .filter(db.func.lower(Student.email) == email.lower())
        .one_or_none()
    )
    template = db.session.get(CertificateTemplate, template_id) if template_id else None
    if not student or (template_id and not template):
        click.echo("Not found", err=True)
        return
    try:
        if template is not None:
            cert = generate_from_template(template, student, course_name)
        else:
            cert = generate_programmatic(student, course_name)
    except (CertificateError, TemplateAssetMissingError) as exc:
        click.echo(f"Failed: {exc}", err=True)
        return
    click.echo(f"{cert.certificate_number} {cert.pdf_path}")


@cli.command("orphan_certs")
@click.option("--fail", "mark_failed", is_flag=True, help="Mark orphans as FAILED")
def orphan_certs(mark_failed: bool):
    """List PENDING certificates that never got a PDF."""
    orphans = find_orphan_certificates()
    for cert in orphans:
        click.echo(f"{cert.id} {cert.certificate_number} {cert.status}")
        if mark_failed:
            cert.mark_failed("Orphaned: rendering never completed")
    if mark_failed and orphans:
        db.session.commit()
    click.echo(f"orphans={len(orphans)} marked_failed={len(orphans) if mark_failed else 0}")


@cli.command("purge_orphan_pdfs")
@click.option(
    "--dry-run", is_flag=True, help="List orphaned certificate PDFs without deleting"
)
def purge_orphan_pdfs(dry_run: bool):
    orphans = find_unreferenced_pdfs()
    deleted = errors = 0
    for path in orphans:
        click.echo(path)
        if dry_run:
            continue
        try:
            os.remove(path)
            deleted += 1
        except OSError:
            errors += 1
            current_app.logger.exception("[CERT-PURGE] failed to remove %s", path)
    summary = f"orphans={len(orphans)} deleted={deleted} errors={errors}"
    click.echo(summary)
    current_app.logger.info("[CERT-PURGE] %s", summary)


if __name__ == "__main__":
    cli()
