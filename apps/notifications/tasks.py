from flask import current_app as app
from flask_mailman import EmailMessage

from main import db, mail
from models.email import EmailJobRecipient
from models.scheduled_task import scheduled_task


def from_email(name):
    display_name, email = app.config[name]
    return f"{display_name} <{email}>"


@scheduled_task(minutes=1)
def send_emails():
    """Send queued emails"""
    count = 0
    with mail.get_connection() as conn:
        for rec in EmailJobRecipient.unsent():
            count += 1
            send_email(conn, rec)
    return count


def send_email(conn, rec: EmailJobRecipient):
    msg = EmailMessage(
        rec.job.subject,
        rec.job.text_body,
        from_email=from_email("NOTIFICATIONS_EMAIL"),
        to=[rec.user.email],
        connection=conn,
    )
    msg.send()
    rec.sent = True
    db.session.add(rec)
    db.session.commit()
