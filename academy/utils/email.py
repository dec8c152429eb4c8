"""
Email utilities using Resend API
"""
import logging

import requests
from django.conf import settings

from .certificate_generator import build_verification_url

logger = logging.getLogger(__name__)

RESEND_ENDPOINT = 'https://api.resend.com/emails'


def send_certificate_email(certificate, recipient_email):
    """
    Send a "certificate earned" notification using Resend API

    Args:
        certificate: Certificate instance
        recipient_email: Address of the student

    Returns:
        dict with 'success' (bool) and 'message' (str)
    """
    if not settings.RESEND_API_KEY:
        return {
            'success': False,
            'message': 'RESEND_API_KEY not configured'
        }
    if not recipient_email:
        return {
            'success': False,
            'message': 'No recipient email'
        }

    certificate_url = build_verification_url(certificate.code)
    subject = f"تهانينا! حصلت على شهادة: {certificate.course_title}"

    html_content = f"""
    <div dir="rtl" style="font-family: 'Segoe UI', Tahoma, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; background: #064e3b; border-radius: 16px;">
        <div style="text-align: center; margin-bottom: 30px;">
            <h1 style="color: #d4a045; margin: 0; font-size: 28px;">المصطبة العلمية</h1>
        </div>
        <div style="background: rgba(255,255,255,0.1); border-radius: 12px; padding: 30px; text-align: center;">
            <h2 style="color: #ffffff; margin: 0 0 20px 0;">أهلاً {certificate.user_name}!</h2>
            <p style="color: #d1fae5; font-size: 16px; line-height: 1.6;">
                أتممت بنجاح: <strong>{certificate.course_title}</strong>
            </p>
            <p style="color: #d1fae5;">رمز الشهادة: <strong>{certificate.code}</strong></p>
            <a href="{certificate_url}" style="display: inline-block; background: #d4a045; color: #064e3b; padding: 12px 28px; text-decoration: none; border-radius: 8px; margin-top: 20px;">تحميل الشهادة</a>
        </div>
    </div>
    """

    try:
        response = requests.post(
            RESEND_ENDPOINT,
            headers={
                'Authorization': f'Bearer {settings.RESEND_API_KEY}',
                'Content-Type': 'application/json',
            },
            json={
                'from': settings.RESEND_FROM,
                'to': [recipient_email],
                'reply_to': settings.RESEND_REPLY_TO,
                'subject': subject,
                'html': html_content,
            },
            timeout=10
        )
    except requests.RequestException as e:
        logger.exception("Certificate email for %s failed", certificate.code)
        return {
            'success': False,
            'message': f'Error sending email: {e}'
        }

    if response.status_code == 200:
        try:
            email_id = response.json().get('id')
        except (ValueError, AttributeError):
            logger.warning("Resend accepted certificate email for %s with an unreadable body", certificate.code)
            email_id = None
        return {
            'success': True,
            'message': 'Certificate email sent successfully',
            'email_id': email_id
        }
    logger.warning("Resend rejected certificate email for %s: %s %s",
                   certificate.code, response.status_code, response.text)
    return {
        'success': False,
        'message': f'Resend API error: {response.status_code}'
    }
