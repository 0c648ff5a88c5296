# tasks/notifications.py
"""
Deferred new-post announcements to newsletter subscribers.

Publishing a post enqueues a one-shot Celery task with a countdown. The task
runs inside the Flask application context, reads the subscriber list at
delivery time and sends a single message addressed to every subscriber.
Scheduled announcements are never cancelled or deduplicated.
"""

from typing import Any, Dict

from celery import Celery, Task
from celery.utils.log import get_task_logger
from flask import current_app
from kombu.exceptions import KombuError

from core.email_templates import render_new_post_email
from core.errors import MailDeliveryError

logger = get_task_logger(__name__)

celery_app = Celery('site_backend')
celery_app.conf.update({
    'broker_url': 'redis://localhost:6379/0',
    'task_serializer': 'json',
    'accept_content': ['json'],
    'timezone': 'UTC',
    'enable_utc': True,
    'task_ignore_result': True,
    'worker_hijack_root_logger': False,
    'task_routes': {
        'tasks.notifications.notify_subscribers': {'queue': 'notifications'},
    },
})


class AppContextTask(Task):
    """Run task bodies inside the Flask app bound by init_celery"""

    def __call__(self, *args, **kwargs):
        flask_app = getattr(self.app, 'flask_app', None)
        if flask_app is None:
            return self.run(*args, **kwargs)
        with flask_app.app_context():
            return self.run(*args, **kwargs)


def init_celery(app) -> Celery:
    """Bind the Celery app to a Flask app and copy its broker settings"""
    celery_app.conf.update({
        'broker_url': app.config['CELERY_BROKER_URL'],
        'task_always_eager': app.config.get('CELERY_TASK_ALWAYS_EAGER', False),
        'task_eager_propagates': app.config.get('CELERY_TASK_ALWAYS_EAGER', False),
    })
    celery_app.flask_app = app
    app.logger.info("Celery configured for deferred notifications")
    return celery_app


@celery_app.task(bind=True, base=AppContextTask, max_retries=0)
def notify_subscribers(self, post: Dict[str, Any]) -> int:
    """
    Email every subscriber about a newly published post.

    Returns:
        Number of subscribers the announcement was addressed to
    """
    subscribers = current_app.subscriber_store.list()
    if not subscribers:
        logger.info('No subscribers found. Email notification not sent.')
        return 0

    mailer = current_app.mailer
    rendered = render_new_post_email(
        post,
        site_url=current_app.config['SITE_URL'],
        signature=current_app.config['MAIL_FROM_NAME'],
    )
    msg = mailer.build_message(
        subject=rendered.subject,
        to=subscribers,
        html=rendered.html,
        text=rendered.text,
    )

    try:
        mailer.send(msg)
    except MailDeliveryError as e:
        logger.error(f"Error sending blog post notification email: {e}")
        return 0

    logger.info(f"Blog post notification for {post.get('id')} sent to {len(subscribers)} subscribers")
    return len(subscribers)


def schedule_post_notification(post: Dict[str, Any], delay_seconds: int = None) -> bool:
    """
    Enqueue the announcement for a post after the configured delay.

    Broker failures are logged and reported as False; they never fail the
    request that published the post.
    """
    if delay_seconds is None:
        delay_seconds = current_app.config['NOTIFICATION_DELAY_SECONDS']

    logger.info(f"Blog post \"{post.get('title')}\" published. "
                f"Scheduling email notification in {delay_seconds} seconds.")
    try:
        notify_subscribers.apply_async(args=[post], countdown=delay_seconds)
    except (KombuError, OSError) as e:
        logger.error(f"Could not schedule notification for post {post.get('id')}: {e}")
        return False
    return True
