import logging

import boto3
from flask import current_app
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


def get_sns_client():
    """SNS client built from the app's AWS settings"""
    config = current_app.config
    session = boto3.Session(
        aws_access_key_id=config.get('AWS_ACCESS_KEY_ID'),
        aws_secret_access_key=config.get('AWS_SECRET_ACCESS_KEY'),
        region_name=config.get('AWS_REGION')
    )
    return session.client('sns')


def send_sns_notification(subject, message):
    """Publish on the configured topic; False when AWS is off or the publish failed"""
    topic_arn = current_app.config.get('SNS_TOPIC_ARN')
    if not current_app.config.get('USE_AWS') or not topic_arn:
        return False

    try:
        # SNS rejects subjects longer than 100 characters
        get_sns_client().publish(TopicArn=topic_arn, Subject=subject[:100], Message=message)
    except (BotoCoreError, ClientError) as e:
        logger.error('SNS publish to %s failed: %s', topic_arn, e)
        return False
    logger.info('Published "%s" on %s', subject[:100], topic_arn)
    return True
