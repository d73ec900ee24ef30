import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from healthsync.core.config import REMINDER_INTERVAL_MINUTES
from healthsync.database import SessionLocal, utcnow
from healthsync.models.appointment import Appointment, AppointmentStatus, CHAT_CLOSES_AFTER
from healthsync.models.notification import NotificationType
from healthsync.services.notifications import notify

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def send_appointment_reminders(db: Session, now: datetime = None) -> int:
    now = now or utcnow()
    appointments = db.query(Appointment).filter(
        Appointment.status == AppointmentStatus.CONFIRMED,
        Appointment.date > now,
        Appointment.date <= now + timedelta(days=1),
        Appointment.reminder_sent == False  # noqa: E712
    ).all()

    for appointment in appointments:
        when = appointment.date.strftime('%Y-%m-%d %H:%M')
        notify(
            db,
            appointment.user_id,
            NotificationType.APPOINTMENT,
            f"Reminder: your appointment with Dr. {appointment.doctor_name} is scheduled for {when}",
            related_id=appointment.id,
        )
        if appointment.doctor_id is not None:
            notify(
                db,
                appointment.doctor_id,
                NotificationType.APPOINTMENT,
                f"Reminder: appointment with {appointment.user.name} at {when}",
                related_id=appointment.id,
            )
        appointment.reminder_sent = True
    db.commit()
    return len(appointments)


def complete_elapsed_appointments(db: Session, now: datetime = None) -> int:
    """Confirmed appointments whose chat window has closed become completed."""
    now = now or utcnow()
    appointments = db.query(Appointment).filter(
        Appointment.status == AppointmentStatus.CONFIRMED,
        Appointment.date < now - CHAT_CLOSES_AFTER
    ).all()
    for appointment in appointments:
        appointment.status = AppointmentStatus.COMPLETED
    db.commit()
    return len(appointments)


def check_appointments():
    db = SessionLocal()
    try:
        reminded = send_appointment_reminders(db)
        completed = complete_elapsed_appointments(db)
        if reminded or completed:
            logger.info("appointment check: %d reminders sent, %d completed", reminded, completed)
    except SQLAlchemyError:
        # Picked up again on the next run
        db.rollback()
        logger.exception("appointment check failed")
    finally:
        db.close()


def start_scheduler():
    scheduler.add_job(
        check_appointments,
        trigger=IntervalTrigger(minutes=REMINDER_INTERVAL_MINUTES),
        id='check_appointments',
        replace_existing=True
    )
    scheduler.start()
    logger.info("scheduler started, checking appointments every %d minutes", REMINDER_INTERVAL_MINUTES)


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
