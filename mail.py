"""
Transactional email over SMTP.

Messages are rendered from Jinja templates under ``templates/emails``. When
``MAIL_SUPPRESS_SEND`` is set (development, tests) nothing leaves the process:
the message is appended to ``app.extensions['mail_outbox']`` instead.
"""
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app, render_template

from errors import ServiceError

logger = logging.getLogger(__name__)


class MailDeliveryError(ServiceError):
    message = 'Failed to transmit email'


def init_mail(app):
    app.extensions['mail_outbox'] = []


def get_outbox():
    return current_app.extensions.setdefault('mail_outbox', [])


def build_message(to, subject, html, text=None):
    msg = MIMEMultipart('alternative')
    msg['Subject'] = subject
    msg['From'] = current_app.config['MAIL_DEFAULT_SENDER']
    msg['To'] = to
    if text:
        msg.attach(MIMEText(text, 'plain'))
    msg.attach(MIMEText(html, 'html'))
    return msg


def send_email(to, subject, html, text=None):
    """Send one message, raising MailDeliveryError when the relay is unusable"""
    config = current_app.config
    msg = build_message(to, subject, html, text)

    if config['MAIL_SUPPRESS_SEND']:
        get_outbox().append({'to': to, 'subject': subject, 'html': html, 'text': text})
        logger.info('Email to %s suppressed: %s', to, subject)
        return msg

    if not config.get('MAIL_PASSWORD'):
        logger.error('Email error: MAIL_PASSWORD is not configured')
        raise MailDeliveryError('Email configuration error: missing MAIL_PASSWORD')

    try:
        with smtplib.SMTP(config['MAIL_SERVER'], config['MAIL_PORT'], timeout=30) as server:
            if config['MAIL_USE_TLS']:
                server.starttls()
            server.login(config['MAIL_USERNAME'], config['MAIL_PASSWORD'])
            server.sendmail(config['MAIL_DEFAULT_SENDER'], [to], msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        logger.error('SMTP error sending "%s" to %s: %s', subject, to, e)
        raise MailDeliveryError() from e

    logger.info('Email sent to %s: %s', to, subject)
    return msg


def send_verification_email(user, link):
    html = render_template('emails/verify_email.html', user=user, link=link)
    return send_email(user.email, 'Activate your My Wealth account and start tracking smarter', html,
                      text=f'Confirm your email address: {link}')


def send_password_reset_email(user, link):
    html = render_template('emails/reset_password.html', user=user, link=link)
    return send_email(user.email, 'Password reset requested for your My Wealth account', html,
                      text=f'Reset your password: {link}')


def send_monthly_report_email(user, summary, month_name, year, top_categories):
    html = render_template('emails/monthly_report.html', user=user, summary=summary,
                           month_name=month_name, year=year, top_categories=top_categories)
    return send_email(user.email, f'Your Wealth Summary for {month_name} {year}', html)
