import logging
from flask import current_app, render_template_string
from flask_mail import Message
from docketwise.extensions import mail
from docketwise.services.file_storage import FileStorage
from docketwise.services.service_error import ServiceError

CURRENCY = "AUD"
INVOICE_SUBJECT = "New Worker Invoice Submitted"

_LAYOUT = """
<!DOCTYPE html>
<html>
  <head><meta charset="utf-8"><title>{{ title }}</title></head>
  <body style="font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 40px 20px;">
      <div style="text-align: center; margin-bottom: 40px; font-size: 24px; font-weight: bold; color: #0056b3;">
        {{ app_name }}
      </div>
      <div style="background: #f9f9f9; padding: 30px; border-radius: 8px; margin-bottom: 30px;">
        {{ body | safe }}
      </div>
      <div style="text-align: center; color: #666; font-size: 14px;">{{ footer }}</div>
    </div>
  </body>
</html>
"""

VERIFICATION_TEMPLATE = """
<h2>Verify your email address</h2>
<p>Thanks for signing up! Please click the button below to verify your email address and activate your account.</p>
<p style="text-align: center; margin: 30px 0;">
  <a href="{{ url }}" style="padding: 12px 24px; background: #0056b3; color: white; text-decoration: none; border-radius: 6px;">Verify Email Address</a>
</p>
<p>If the button doesn't work, you can copy and paste this link into your browser:</p>
<p style="word-break: break-all; color: #666;">{{ url }}</p>
<p><strong>This verification link will expire in {{ expiry_hours }} hours.</strong></p>
"""

PASSWORD_RESET_TEMPLATE = """
<h2>Reset your password</h2>
<p>We received a request to reset your password. Click the button below to choose a new one.</p>
<p style="text-align: center; margin: 30px 0;">
  <a href="{{ url }}" style="padding: 12px 24px; background: #0056b3; color: white; text-decoration: none; border-radius: 6px;">Reset Password</a>
</p>
<p style="word-break: break-all; color: #666;">{{ url }}</p>
<p><strong>This link will expire in {{ expiry_hours }} hour{{ 's' if expiry_hours != 1 }}.</strong></p>
"""

WELCOME_TEMPLATE = """
<h2>Welcome, {{ name }}!</h2>
<p>Your email address has been verified and your {{ app_name }} account is ready.</p>
<p style="text-align: center; margin: 30px 0;">
  <a href="{{ url }}" style="padding: 12px 24px; background: #0056b3; color: white; text-decoration: none; border-radius: 6px;">Sign In</a>
</p>
"""

PASSWORD_CHANGED_TEMPLATE = """
<h2>Password changed</h2>
<p>Hi {{ name }},</p>
<p>The password for your {{ app_name }} account was just changed.</p>
<p>If you did not make this change, please reset your password immediately and contact your administrator.</p>
"""

INVOICE_TEXT_TEMPLATE = """New Worker Invoice Submitted

Invoice ID: {{ d.invoice_id }}
Worker: {{ d.contractor_name }}
Week: {{ d.week_label }}
Hourly Rate: ${{ '%.2f' % d.hourly_rate }} {{ currency }}
Total Hours: {{ '%.2f' % d.total_hours }}
Total Amount: ${{ '%.2f' % d.total_amount }} {{ currency }}
Submitted: {{ d.submitted_at }}

Work Details:
{% for e in d.entries %}{{ e.date }} - {{ e.builder_name }} ({{ e.company_code }}) - {{ e.location_label }}
   Tonnage: {{ '%.2f' % e.tonnage_hours }}h, Day Labour: {{ '%.2f' % e.day_labour_hours }}h, Total: {{ '%.2f' % e.total_hours }}h
{% if not loop.last %}
{% endif %}{% endfor %}
Please review and process this invoice."""

INVOICE_HTML_TEMPLATE = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #333; border-bottom: 2px solid #0066cc; padding-bottom: 10px;">New Worker Invoice Submitted</h2>
  <div style="background: #f8f9fa; padding: 20px; border-radius: 8px; margin: 20px 0;">
    <h3 style="margin: 0 0 15px 0; color: #333;">Invoice Summary</h3>
    <table style="width: 100%; border-spacing: 0;">
      <tr><td style="padding: 8px 0; font-weight: bold; width: 30%;">Invoice ID:</td><td>{{ d.invoice_id }}</td></tr>
      <tr><td style="padding: 8px 0; font-weight: bold;">Worker:</td><td>{{ d.contractor_name }}</td></tr>
      <tr><td style="padding: 8px 0; font-weight: bold;">Week:</td><td>{{ d.week_label }}</td></tr>
      <tr><td style="padding: 8px 0; font-weight: bold;">Hourly Rate:</td><td>${{ '%.2f' % d.hourly_rate }} {{ currency }}</td></tr>
      <tr><td style="padding: 8px 0; font-weight: bold;">Total Hours:</td><td>{{ '%.2f' % d.total_hours }}</td></tr>
      <tr><td style="padding: 12px 0; font-weight: bold;">Total Amount:</td>
          <td style="font-weight: bold; color: #0066cc;">${{ '%.2f' % d.total_amount }} {{ currency }}</td></tr>
      <tr><td style="padding: 8px 0; font-weight: bold;">Submitted:</td><td>{{ d.submitted_at }}</td></tr>
    </table>
  </div>
  <div style="margin: 30px 0;">
    <h3 style="color: #333; margin-bottom: 15px;">Work Details</h3>
    <table style="width: 100%; border-collapse: collapse;">
      <thead>
        <tr style="background: #0066cc; color: white;">
          <th style="padding: 12px; text-align: left;">Date</th>
          <th style="padding: 12px; text-align: left;">Builder</th>
          <th style="padding: 12px; text-align: left;">Location</th>
          <th style="padding: 12px; text-align: right;">Tonnage</th>
          <th style="padding: 12px; text-align: right;">Day Labour</th>
          <th style="padding: 12px; text-align: right;">Total</th>
        </tr>
      </thead>
      <tbody>
      {% for e in d.entries %}
        <tr style="border-bottom: 1px solid #eee;{% if loop.index0 % 2 == 0 %} background: #f8f9fa;{% endif %}">
          <td style="padding: 10px;">{{ e.date }}</td>
          <td style="padding: 10px;">{{ e.builder_name }}<br><small style="color: #666;">({{ e.company_code }})</small></td>
          <td style="padding: 10px;">{{ e.location_label }}</td>
          <td style="padding: 10px; text-align: right;">{{ '%.2f' % e.tonnage_hours }}h</td>
          <td style="padding: 10px; text-align: right;">{{ '%.2f' % e.day_labour_hours }}h</td>
          <td style="padding: 10px; text-align: right; font-weight: bold;">{{ '%.2f' % e.total_hours }}h</td>
        </tr>
      {% endfor %}
      </tbody>
    </table>
  </div>
  {% if note %}<p><em>{{ note }}</em></p>{% endif %}
  <div style="margin: 30px 0; padding: 20px; background: #e8f4fd; border-radius: 8px;">
    <p style="margin: 0;"><strong>Next Steps:</strong> Please review and process this invoice through your payroll system.</p>
  </div>
</div>
"""


class EmailService:
    @staticmethod
    def _app_name():
        return current_app.config.get('APP_NAME', 'DocketWise')

    @staticmethod
    def _frontend_url():
        return (current_app.config.get('FRONTEND_URL') or '').rstrip('/')

    @staticmethod
    def _render_page(title, body_template, footer='', **context):
        app_name = EmailService._app_name()
        body = render_template_string(body_template, app_name=app_name, **context)
        return render_template_string(_LAYOUT, title=title, app_name=app_name, body=body, footer=footer)

    @staticmethod
    def _send(msg, failure_message):
        try:
            mail.send(msg)
            logging.info(f"Email '{msg.subject}' sent to {', '.join(msg.recipients)}")
            return True
        except Exception as e:
            logging.error(f"Error sending email '{msg.subject}': {e}", exc_info=True)
            raise ServiceError(failure_message, 500)

    @staticmethod
    def send_verification_email(email, raw_token):
        url = f"{EmailService._frontend_url()}/auth/verify-email?token={raw_token}"
        html = EmailService._render_page(
            'Verify your email', VERIFICATION_TEMPLATE,
            footer=f"If you didn't create an account with {EmailService._app_name()}, you can safely ignore this email.",
            url=url, expiry_hours=current_app.config.get('VERIFICATION_TOKEN_EXPIRY_HOURS', 24))
        msg = Message(subject='Verify your email address', recipients=[email], html=html)
        return EmailService._send(msg, 'Failed to send verification email')

    @staticmethod
    def send_password_reset_email(email, raw_token):
        url = f"{EmailService._frontend_url()}/auth/reset-password?token={raw_token}"
        html = EmailService._render_page(
            'Reset your password', PASSWORD_RESET_TEMPLATE,
            footer="If you didn't request a password reset, you can safely ignore this email.",
            url=url, expiry_hours=current_app.config.get('PASSWORD_RESET_TOKEN_EXPIRY_HOURS', 1))
        msg = Message(subject='Reset your password', recipients=[email], html=html)
        return EmailService._send(msg, 'Failed to send password reset email')

    @staticmethod
    def send_welcome_email(email, name=None):
        html = EmailService._render_page(
            'Welcome', WELCOME_TEMPLATE, name=name or 'there',
            url=f"{EmailService._frontend_url()}/auth/login")
        msg = Message(subject=f"Welcome to {EmailService._app_name()}!", recipients=[email], html=html)
        return EmailService._send(msg, 'Failed to send welcome email')

    @staticmethod
    def send_password_changed_email(email, name=None):
        """Notification only: failures are logged and reported as False."""
        html = EmailService._render_page('Password changed', PASSWORD_CHANGED_TEMPLATE, name=name or 'there')
        msg = Message(subject='Password changed successfully', recipients=[email], html=html)
        try:
            return EmailService._send(msg, 'Failed to send password changed email')
        except ServiceError:
            return False

    @staticmethod
    def invoice_subject(contractor_name, week_label):
        return f"{INVOICE_SUBJECT} - {contractor_name} - {week_label}"

    @staticmethod
    def render_invoice_bodies(invoice_data, note=None):
        text = render_template_string(INVOICE_TEXT_TEMPLATE, d=invoice_data, currency=CURRENCY)
        html = render_template_string(INVOICE_HTML_TEMPLATE, d=invoice_data, currency=CURRENCY, note=note)
        if note:
            text = f"{text}\n\n({note})"
        return text, html

    @staticmethod
    def send_invoice_email(invoice_data, pdf_bytes=None, reply_to=None):
        """Send the submitted invoice to the director, attaching the PDF when there is one."""
        note = None if pdf_bytes else "Note: PDF attachment could not be generated"
        text, html = EmailService.render_invoice_bodies(invoice_data, note)
        msg = Message(
            subject=EmailService.invoice_subject(invoice_data['contractor_name'], invoice_data['week_label']),
            recipients=[current_app.config.get('INVOICE_DIRECTOR_EMAIL')],
            body=text,
            html=html,
            reply_to=reply_to,
        )
        if pdf_bytes:
            safe = FileStorage.safe_name(invoice_data['contractor_name'])
            msg.attach(f"Invoice_{invoice_data['invoice_id']}_{safe}.pdf", 'application/pdf', pdf_bytes)
        return EmailService._send(msg, 'Failed to send invoice email')
