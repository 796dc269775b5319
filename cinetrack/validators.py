from django.core.validators import RegexValidator
from django.core.exceptions import ValidationError
from django.utils.deconstruct import deconstructible

# Username validator
username_validator = RegexValidator(
    regex=r'^[\w.@+-]+$',
    message=(
        'Enter a valid username. This value may contain only letters, '
        'numbers, and @/./+/-/_ characters.'
    ),
)

# Phone numbers: optional leading +, digits, spaces, dashes and parentheses
phone_validator = RegexValidator(
    regex=r'^\+?[\d\s()-]{6,20}$',
    message='Enter a valid phone number.',
)


@deconstructible
class NotBlankValidator:
    """
    Validator that rejects values consisting only of whitespace.
    """
    message = 'This field cannot be blank.'

    def __init__(self, message=None):
        if message:
            self.message = message

    def __call__(self, value):
        if value is not None and not str(value).strip():
            raise ValidationError(self.message)

    def __eq__(self, other):
        return isinstance(other, NotBlankValidator) and self.message == other.message


# External catalogue ids look like "tmdb_movie_603" or "tmdb_tv_1399"
external_id_validator = RegexValidator(
    regex=r'^[a-z0-9]+(_[a-z0-9]+)*$',
    message='Enter a valid external id (lowercase letters, digits and underscores).',
)
