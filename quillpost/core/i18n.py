"""Message lookup for user-facing error strings."""

MESSAGES = {
    'errors.api.subscribers.subscriberNotFound': 'Subscriber not found.',
    'errors.api.subscribers.subscriberAlreadyExists': 'Email address is already subscribed.',
    'errors.api.subscribers.invalidEmail': 'Please enter a valid email address.',
    'errors.api.subscribers.noPermissionToAction': 'You do not have permission to {method} {doc_name}.',
    'errors.api.db.selectFileToImport': 'Please select a file to import.',
    'errors.api.db.unsupportedFile': 'Unsupported file. Please try a {extensions} file.',
    'errors.api.db.invalidFileEncoding': 'The file could not be read. Please save it as UTF-8 and try again.',
    'errors.api.utils.noRootKeyProvided': "No root key ('{doc_name}') provided.",
    'errors.api.utils.invalidIdProvided': 'Invalid id provided.',
    'errors.api.utils.missingRequiredAttr': 'Validation (isRequired) failed for {attr}.',
    'errors.api.utils.invalidOption': 'Validation (is{kind}) failed for {option}.',
    'errors.models.invalidFilterField': 'Filtering by {field} is not supported.',
    'errors.models.invalidOrderField': 'Ordering by {field} is not supported.',
}


def t(key, **kwargs):
    """Translate a message key; unknown keys come back unchanged"""
    message = MESSAGES.get(key)
    if message is None:
        return key
    return message.format(**kwargs) if kwargs else message
