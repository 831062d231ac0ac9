import logging

import resend

from marketplace.errors import MailerError

logger = logging.getLogger(__name__)


class Mailer:

    def send(self, to, subject, text):
        raise NotImplementedError


class ResendMailer(Mailer):

    def __init__(self, api_key, sender):
        self.api_key = (api_key or '').strip()
        self.sender = sender

    @classmethod
    def from_config(cls, config):
        return cls(config.get('RESEND_API_KEY'), config.get('MAIL_FROM'))

    def send(self, to, subject, text):
        if not self.api_key:
            raise MailerError('Resend API key is not configured.')

        payload = {
            'from': self.sender,
            'to': [to],
            'subject': subject,
            'text': text,
        }
        previous_api_key = getattr(resend, 'api_key', None)
        resend.api_key = self.api_key
        try:
            response = resend.Emails.send(payload)
        except Exception as exc:
            raise MailerError(str(exc)) from exc
        finally:
            resend.api_key = previous_api_key

        if not isinstance(response, dict) or not response.get('id'):
            raise MailerError(f'Unexpected Resend response: {response}')
        logger.info("Sent '%s' mail to %s (id=%s)",
                    subject, to, response.get('id'))
        return response['id']
