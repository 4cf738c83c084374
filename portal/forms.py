from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, SelectField, SubmitField
from wtforms.validators import DataRequired, Email, Length, Optional

from portal.models import AccountStatus, UserRole


class LoginForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(message='Enter your email'), Email(message='Enter a valid email address')])
    password = PasswordField('Password', validators=[DataRequired(message='Enter your password')])
    submit = SubmitField('Sign In')


class UserForm(FlaskForm):
    name = StringField('Full Name', validators=[DataRequired(message='Enter a name'), Length(max=120)])
    email = StringField('Email Address', validators=[DataRequired(message='Enter an email'), Email(message='Enter a valid email address')])
    role = SelectField('Role', choices=[(UserRole.ADMIN.value, 'Admin'), (UserRole.GUEST.value, 'Guest')], default=UserRole.GUEST.value)
    status = SelectField('Status', choices=[(AccountStatus.ACTIVE.value, 'Active'), (AccountStatus.INACTIVE.value, 'Inactive')], default=AccountStatus.ACTIVE.value)
    password = PasswordField('Password', validators=[Optional(), Length(min=6, message='Use at least 6 characters')])
    submit = SubmitField('Save')
