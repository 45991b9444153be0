"""Storefront review form. Required-field rules live in the review service."""
from flask_wtf import FlaskForm
from wtforms import SelectField, StringField, TextAreaField
from wtforms.validators import Length, Optional

RATING_CHOICES = [(5, '5 stars'), (4, '4 stars'), (3, '3 stars'), (2, '2 stars'), (1, '1 star')]


class ReviewForm(FlaskForm):
    rating = SelectField('Rating', choices=RATING_CHOICES, coerce=int, default=5)
    title = StringField('Headline', validators=[Optional(), Length(max=200)])
    content = TextAreaField('Your review', validators=[Optional(), Length(max=5000)], render_kw={'rows': 5})
    variant_name = SelectField('Option you bought', choices=[], validate_choice=False)
