from buytown.services.email_service import send_email
from buytown.utils.template import render_template


def send_user_email(template, subject, user, settings, **ctx):
    html = render_template(template, **ctx)
    return send_email(to=user.email, subject=subject, html=html, settings=settings)


def send_admin_email(template, subject, settings, **ctx):
    html = render_template(template, **ctx)
    return send_email(to=settings.admin_emails, subject=subject, html=html, settings=settings)
