"""
Quillpost Errors
================

Error kinds raised by API operations. Each carries a human readable
message and the HTTP status the blueprints answer with.
"""


class QuillpostError(Exception):
    """Base class for errors surfaced to API clients"""
    status_code = 500
    error_type = 'QuillpostError'

    def __init__(self, message=None, context=None):
        self.message = message or self.default_message()
        self.context = context
        super().__init__(self.message)

    @classmethod
    def default_message(cls):
        return 'An unexpected error occurred'

    def to_dict(self):
        payload = {'error': self.message, 'type': self.error_type}
        if self.context:
            payload['context'] = self.context
        return payload


class ValidationError(QuillpostError):
    status_code = 422
    error_type = 'ValidationError'

    @classmethod
    def default_message(cls):
        return 'The request failed validation'


class NotFoundError(QuillpostError):
    status_code = 404
    error_type = 'NotFoundError'

    @classmethod
    def default_message(cls):
        return 'Resource not found'


class NoPermissionError(QuillpostError):
    status_code = 403
    error_type = 'NoPermissionError'

    @classmethod
    def default_message(cls):
        return 'You do not have permission to perform this request'


class InternalServerError(QuillpostError):
    status_code = 500
    error_type = 'InternalServerError'
