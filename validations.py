"""
Input schemas for the JSON API.

The forms are plain Flask-WTF forms fed from a JSON body. ``parse_json_form``
turns the body into form data (strings, like a browser would post) so the usual
WTForms coercion and validators apply unchanged.
"""
import math

from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import BooleanField, DateField, FloatField, IntegerField, StringField
from wtforms.validators import (
    AnyOf,
    DataRequired,
    Email,
    EqualTo,
    Length,
    NumberRange,
    Optional,
    Regexp,
)
from wtforms.validators import ValidationError as FieldValidationError

from errors import BadRequestError, ValidationError
from models import ACTIVITY_ICONS, CATEGORY_GROUPS, STOCK_TYPES, TRANSACTION_TYPES

MONTH_PATTERN = r'^\d{4}-(0[1-9]|1[0-2])$'
FALSE_VALUES = ('false', '0', '')


def lowercase(value):
    return value.lower() if isinstance(value, str) else value


def finite(message):
    def _finite(form, field):
        if field.data is not None and not math.isfinite(field.data):
            raise FieldValidationError(message)
    return _finite


def positive(message):
    def _positive(form, field):
        if field.data is not None and (not math.isfinite(field.data) or field.data <= 0):
            raise FieldValidationError(message)
    return _positive


class JSONForm(FlaskForm):
    class Meta:
        # CSRFProtect already guards the request as a whole
        csrf = False


def get_json_body():
    """Return the request body as a dict, rejecting anything else"""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise BadRequestError('Request body must be a JSON object')
    return payload


def json_formdata(payload):
    formdata = MultiDict()
    for key, value in payload.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = 'true' if value else 'false'
        formdata.add(key, str(value))
    return formdata


def first_error(errors):
    for messages in errors.values():
        if messages:
            return messages[0]
    return 'Validation failed'


def parse_json_form(form_class, payload=None, detailed=True):
    """Build ``form_class`` from the JSON body and validate it.

    With ``detailed`` a failure raises ValidationError carrying every field
    error; otherwise a BadRequestError with just the first message.
    """
    if payload is None:
        payload = get_json_body()
    form = form_class(formdata=json_formdata(payload))
    if not form.validate():
        if detailed:
            raise ValidationError(details=form.errors)
        raise BadRequestError(first_error(form.errors))
    return form


class SignupForm(JSONForm):
    fullName = StringField(validators=[DataRequired('Full name must be at least 2 characters'),
                                       Length(min=2, message='Full name must be at least 2 characters')])
    email = StringField(validators=[DataRequired('Invalid email address'), Email('Invalid email address')])
    password = StringField(validators=[DataRequired('Password must be at least 6 characters'),
                                       Length(min=6, message='Password must be at least 6 characters')])
    confirmPassword = StringField(validators=[EqualTo('password', message="Passwords don't match")])


class LoginForm(JSONForm):
    email = StringField(validators=[DataRequired('Invalid email address'), Email('Invalid email address')])
    password = StringField(validators=[DataRequired('Password is required')])


class TransactionForm(JSONForm):
    type = StringField(filters=[lowercase], validators=[DataRequired('Type is required'),
                                                        AnyOf(TRANSACTION_TYPES, message='Type must be income, expense or investment')])
    categoryGroup = StringField(validators=[DataRequired('Category group is required'),
                                            AnyOf(CATEGORY_GROUPS, message='Category group must be Income, Expense or Investment')])
    category = StringField(validators=[DataRequired('Category is required')])
    subCategory = StringField(validators=[Optional()])
    amount = FloatField(validators=[DataRequired('Amount must be greater than 0'),
                                    positive('Amount must be greater than 0')])
    date = DateField(format='%Y-%m-%d', validators=[DataRequired('Date must be in YYYY-MM-DD format')])
    notes = StringField(validators=[Optional()])
    categoryId = IntegerField(validators=[Optional()])


class CategoryForm(JSONForm):
    categoryGroup = StringField(validators=[DataRequired('Category group and name are required')])
    name = StringField(validators=[DataRequired('Category group and name are required'),
                                   Length(max=100, message='Category name is too long')])

    def validate_categoryGroup(self, field):
        normalized = field.data.strip().capitalize()
        if normalized not in CATEGORY_GROUPS:
            raise FieldValidationError('Category group must be Income, Expense or Investment')
        field.data = normalized


class BudgetForm(JSONForm):
    category = StringField(validators=[DataRequired('Category is required')])
    amount = FloatField(validators=[DataRequired('Amount is required'), positive('Amount must be greater than 0')])
    month = StringField(validators=[DataRequired('Month is required'),
                                    Regexp(MONTH_PATTERN, message='Month must be in YYYY-MM format')])


class BudgetAmountForm(JSONForm):
    amount = FloatField(validators=[DataRequired('Amount is required'), positive('Amount must be greater than 0')])


class StockForm(JSONForm):
    symbol = StringField(validators=[DataRequired('Symbol is required')])
    name = StringField(validators=[DataRequired('Name is required')])
    quantity = FloatField(validators=[DataRequired('Quantity must be greater than 0'),
                                      positive('Quantity must be greater than 0')])
    buyPrice = FloatField()
    sellPrice = FloatField(validators=[Optional(), finite('Sell price must be a number')])
    type = StringField(validators=[DataRequired('Type is required'),
                                   AnyOf(STOCK_TYPES, message='Type must be BUY or SELL')])
    broker = StringField(validators=[Optional()])
    date = DateField(format='%Y-%m-%d', validators=[Optional()])

    def validate_buyPrice(self, field):
        if field.data is None:
            raise FieldValidationError('Buy price is required')
        if not math.isfinite(field.data):
            raise FieldValidationError('Buy price must be a number')
        if field.data < 0:
            raise FieldValidationError('Buy price cannot be negative')


class ProfileForm(JSONForm):
    fullName = StringField(validators=[Optional(), Length(min=2, message='Full name must be at least 2 characters')])
    email = StringField(validators=[Optional(), Email('Invalid email address')])
    enableBudgetAlerts = BooleanField(false_values=FALSE_VALUES)
    monthlyBudget = FloatField(validators=[Optional(), finite('Monthly budget must be a number'),
                                         NumberRange(min=0, message='Monthly budget cannot be negative')])


class ChangePasswordForm(JSONForm):
    currentPassword = StringField(validators=[DataRequired('Current and new password are required')])
    newPassword = StringField(validators=[DataRequired('Current and new password are required'),
                                          Length(min=6, message='Password must be at least 6 characters')])


class ActivityLogForm(JSONForm):
    action = StringField(validators=[DataRequired('Action and description are required')])
    description = StringField(validators=[DataRequired('Action and description are required')])
    icon = StringField(validators=[Optional(), AnyOf(ACTIVITY_ICONS, message='Icon must be success, warning, info or error')])
