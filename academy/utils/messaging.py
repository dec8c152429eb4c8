"""
Direct messages between students, supervisors and administrators.

Who may write to whom:

    student     -> their assigned supervisor; complaints go to an administrator
    supervisor  -> any administrator or one of their own students
    admin       -> anyone

Students never see complaints other than the ones they sent. Administrators
see every complaint. A message carrying an attachment stays visible for
ACADEMY['MESSAGE_ATTACHMENT_TTL_DAYS'] days; cleanup_expired_messages()
removes it and its stored file afterwards.
"""
import logging
from datetime import timedelta

from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings
from django.contrib.auth.models import User
from django.core.exceptions import BadRequest, PermissionDenied
from django.db.models import Q
from django.utils import timezone

from ..models import Message, SupervisorAssignment, SupervisorProfile
from .api import user_role
from .storage import R2Storage, key_from_url
from .supervisors import get_supervisor

logger = logging.getLogger(__name__)


def attachment_ttl():
    return timedelta(days=settings.ACADEMY.get('MESSAGE_ATTACHMENT_TTL_DAYS', 7))


def _not_expired(now):
    return Q(expiry_date__isnull=True) | Q(expiry_date__gt=now)


def check_can_message(sender, receiver, is_complaint=False):
    """Raise PermissionDenied unless sender may write to receiver."""
    if sender.pk == receiver.pk:
        raise BadRequest('Cannot send a message to yourself')

    sender_role = user_role(sender)
    receiver_role = user_role(receiver)
    if sender_role == 'student':
        if is_complaint:
            if receiver_role != 'admin':
                raise PermissionDenied('الشكاوى ترسل للمدير فقط')
        elif get_supervisor(sender) != receiver:
            raise PermissionDenied('يمكنك مراسلة مشرفك المباشر فقط')
    elif sender_role == 'supervisor':
        own_student = SupervisorAssignment.objects.filter(student=receiver, supervisor=sender).exists()
        if receiver_role != 'admin' and not own_student:
            raise PermissionDenied('يمكنك مراسلة المدير أو طلابك فقط')
    else:
        logger.info("Admin %s messaging %s %s", sender.pk, receiver_role, receiver.pk)


def send_message(sender, receiver, content='', attachment_url='', attachment_type='', attachment_name='',
                 is_complaint=False):
    content = (content or '').strip()
    if not content and not attachment_url:
        raise BadRequest('Message must have content or an attachment')
    # Only students file complaints
    is_complaint = bool(is_complaint) and user_role(sender) == 'student'
    check_can_message(sender, receiver, is_complaint)

    now = timezone.now()
    message = Message.objects.create(
        sender=sender,
        receiver=receiver,
        content=content,
        timestamp=now,
        attachment_url=attachment_url or '',
        attachment_type=attachment_type or '',
        attachment_name=attachment_name or '',
        expiry_date=now + attachment_ttl() if (attachment_url or attachment_type) else None,
        is_complaint=is_complaint,
    )
    logger.info("Message %s from %s to %s%s", message.id, sender.pk, receiver.pk,
                " (complaint)" if is_complaint else "")
    return message


def visible_messages(user, now=None):
    """Messages the user sent or received, oldest first, expired ones excluded."""
    now = now or timezone.now()
    role = user_role(user)
    scope = Q(sender=user) | Q(receiver=user)
    if role == 'admin':
        scope |= Q(is_complaint=True)
    messages = Message.objects.filter(scope).filter(_not_expired(now))
    if role == 'student':
        messages = messages.filter(Q(is_complaint=False) | Q(sender=user))
    return messages.order_by('timestamp', 'id')


def unread_count(user, now=None):
    now = now or timezone.now()
    messages = Message.objects.filter(receiver=user, read=False).filter(_not_expired(now))
    if user_role(user) == 'student':
        messages = messages.filter(is_complaint=False)
    return messages.count()


def mark_read(user, message_id):
    """Only the receiver can mark a message as read."""
    updated = Message.objects.filter(pk=message_id, receiver=user).update(read=True)
    if not updated:
        raise Message.DoesNotExist('Message not found')


def mark_conversation_read(user, other_user_id):
    """Mark everything other_user_id sent to user as read; returns the number of messages changed."""
    return Message.objects.filter(sender_id=other_user_id, receiver=user, read=False).update(read=True)


def _admins():
    return User.objects.filter(Q(is_staff=True) | Q(is_superuser=True), is_active=True).order_by('id')


def contacts(user):
    """The users this user may write to."""
    role = user_role(user)
    if role == 'admin':
        supervisor_ids = SupervisorProfile.objects.values('user_id')
        found = list(User.objects.filter(pk__in=supervisor_ids).order_by('id'))
        found += list(User.objects.filter(
            sent_messages__receiver=user, sent_messages__is_complaint=True
        ).distinct().order_by('id'))
    elif role == 'supervisor':
        found = list(_admins())
        found += list(User.objects.filter(supervisor_assignment__supervisor=user).order_by('id'))
    else:
        found = list(_admins())
        supervisor = get_supervisor(user)
        if supervisor is not None:
            found.append(supervisor)

    unique = {}
    for contact in found:
        if contact.pk != user.pk:
            unique.setdefault(contact.pk, contact)
    return [contact_dict(contact) for contact in unique.values()]


def contact_dict(user):
    return {
        'id': user.id,
        'username': user.username,
        'name': user.get_full_name() or user.username,
        'email': user.email,
        'role': user_role(user),
    }


def serialize_messages(messages):
    """Message dicts; stored attachment URLs are swapped for signed download URLs."""
    storage = None
    payload = []
    for message in messages:
        data = message.as_dict()
        if message.attachment_url:
            if storage is None:
                storage = R2Storage.from_settings()
            try:
                data['attachmentUrl'] = storage.generate_download_url(key_from_url(message.attachment_url))
            except (BotoCoreError, ClientError):
                logger.warning("Could not sign attachment URL of message %s", message.id, exc_info=True)
        payload.append(data)
    return payload


def cleanup_expired_messages(storage=None, now=None):
    """
    Delete expired messages and their stored attachments.
    A file that cannot be removed is logged and its message is deleted anyway.
    """
    now = now or timezone.now()
    expired = Message.objects.filter(expiry_date__isnull=False, expiry_date__lt=now)
    files_deleted = 0
    for url in expired.exclude(attachment_url='').values_list('attachment_url', flat=True):
        if storage is None:
            storage = R2Storage.from_settings()
        try:
            storage.delete_file(key_from_url(url))
            files_deleted += 1
        except (BotoCoreError, ClientError):
            logger.warning("Could not delete expired attachment %s", url, exc_info=True)
    deleted, _ = expired.delete()
    logger.info("Removed %s expired message(s), %s attachment(s)", deleted, files_deleted)
    return {'deleted': deleted, 'attachmentsDeleted': files_deleted}
