from flask_wtf import FlaskForm
from wtforms import (
    StringField, PasswordField, BooleanField, TextAreaField,
    SelectField, SelectMultipleField, IntegerField, DecimalField, FloatField
)
from wtforms.validators import DataRequired, InputRequired, Email, Length, Optional, NumberRange

from gympass.models.notification import NOTIFICATION_TARGETS
from gympass.models.promo_code import PROMO_CODE_TYPES
from gympass.services.admin import SUBSCRIPTION_ACTIONS
from gympass.services.meal_plans import GOALS
from gympass.utils.calculators import (
    PERIODS, CLASSES,
    MIN_WEIGHT_KG, MAX_WEIGHT_KG, MIN_HEIGHT_CM, MAX_HEIGHT_CM, MIN_AGE, MAX_AGE
)

PERIOD_LABELS = {'Daily': 'يومي', 'Weekly': 'أسبوعي', 'Monthly': 'شهري'}
CLASS_LABELS = {'Iron': 'حديد', 'Fitness': 'لياقة'}

PERIOD_CHOICES = [(p, PERIOD_LABELS[p]) for p in PERIODS]
CLASS_CHOICES = [(c, CLASS_LABELS[c]) for c in CLASSES]
GENDER_CHOICES = [('', '-'), ('male', 'ذكر'), ('female', 'أنثى')]


# ----------------------------------------------------------------------
# Gym owner account
# ----------------------------------------------------------------------

class LoginForm(FlaskForm):
    """Login form"""
    email = StringField('البريد الإلكتروني', validators=[DataRequired(), Email()])
    password = PasswordField('كلمة المرور', validators=[DataRequired()])
    remember_me = BooleanField('تذكرني')


class PricingForm(FlaskForm):
    """Subscription prices per period and class"""
    dailyIron = DecimalField('يومي حديد', validators=[Optional(), NumberRange(min=0)])
    weeklyIron = DecimalField('أسبوعي حديد', validators=[Optional(), NumberRange(min=0)])
    monthlyIron = DecimalField('شهري حديد', validators=[Optional(), NumberRange(min=0)])
    dailyFitness = DecimalField('يومي لياقة', validators=[Optional(), NumberRange(min=0)])
    weeklyFitness = DecimalField('أسبوعي لياقة', validators=[Optional(), NumberRange(min=0)])
    monthlyFitness = DecimalField('شهري لياقة', validators=[Optional(), NumberRange(min=0)])

    def pricing_data(self):
        return {
            name: field.data for name, field in self._fields.items()
            if isinstance(field, DecimalField) and field.data is not None
        }


class SignupForm(PricingForm):
    """Gym owner signup; the promo code pays for the first window"""
    email = StringField('البريد الإلكتروني', validators=[DataRequired(), Email(), Length(max=120)])
    password = PasswordField('كلمة المرور', validators=[DataRequired(), Length(min=6)])
    promo_code = StringField('رمز التفعيل', validators=[DataRequired(), Length(max=40)])
    phone = StringField('رقم الهاتف', validators=[Optional(), Length(max=20)])


# ----------------------------------------------------------------------
# Members
# ----------------------------------------------------------------------

class BiometricsMixin:
    gender = SelectField('الجنس', choices=GENDER_CHOICES, validators=[Optional()])
    weight = FloatField('الوزن (كغ)', validators=[Optional(), NumberRange(min=MIN_WEIGHT_KG, max=MAX_WEIGHT_KG)])
    height = FloatField('الطول (سم)', validators=[Optional(), NumberRange(min=MIN_HEIGHT_CM, max=MAX_HEIGHT_CM)])
    age = IntegerField('العمر', validators=[Optional(), NumberRange(min=MIN_AGE, max=MAX_AGE)])

    def biometrics_data(self):
        return {
            'gender': self.gender.data or None,
            'weight': self.weight.data,
            'height': self.height.data,
            'age': self.age.data,
        }


class SubscriptionChoiceMixin:
    period = SelectField('مدة الاشتراك', choices=PERIOD_CHOICES, validators=[DataRequired()])
    classes = SelectMultipleField('نوع التمرين', choices=CLASS_CHOICES, validators=[DataRequired()])


class MemberForm(BiometricsMixin, SubscriptionChoiceMixin, FlaskForm):
    """Register member form"""
    name = StringField('الاسم الكامل', validators=[DataRequired(), Length(max=100)])
    phone = StringField('رقم الهاتف', validators=[Optional(), Length(max=20)])
    subscription_price = DecimalField('سعر الاشتراك', validators=[Optional(), NumberRange(min=0)])
    amount_paid = DecimalField('المبلغ المدفوع', validators=[Optional(), NumberRange(min=0)])

    def member_data(self):
        data = {
            'name': self.name.data,
            'phone': self.phone.data,
            'period': self.period.data,
            'classes': self.classes.data,
            'subscription_price': self.subscription_price.data,
            'amount_paid': self.amount_paid.data,
        }
        data.update(self.biometrics_data())
        return data


class MemberUpdateForm(BiometricsMixin, FlaskForm):
    """Edit member details"""
    name = StringField('الاسم الكامل', validators=[Optional(), Length(max=100)])
    phone = StringField('رقم الهاتف', validators=[Optional(), Length(max=20)])

    def member_data(self):
        data = {k: v for k, v in self.biometrics_data().items() if v is not None}
        if self.name.raw_data:
            data['name'] = self.name.data
        if self.phone.raw_data:
            data['phone'] = self.phone.data
        return data


class RenewForm(SubscriptionChoiceMixin, FlaskForm):
    """Renew subscription form"""


class PaymentForm(FlaskForm):
    """Payment form"""
    amount = DecimalField('المبلغ', validators=[InputRequired(), NumberRange(min=0.01)])
    idempotency_key = StringField('مفتاح العملية', validators=[Optional(), Length(max=64)])


class MealPlanForm(FlaskForm):
    """Generate a meal plan; calories default to the member's BMR"""
    goal = SelectField('الهدف', choices=[(g, g) for g in GOALS], default='maintenance',
                       validators=[Optional()])
    calories = FloatField('السعرات الحرارية', validators=[Optional(), NumberRange(min=1)])


# ----------------------------------------------------------------------
# Admin (API key, no session, so no CSRF token)
# ----------------------------------------------------------------------

class AdminForm(FlaskForm):
    class Meta:
        csrf = False


class PromoCodeForm(AdminForm):
    """Create promo code form"""
    code = StringField('الكود', validators=[DataRequired(), Length(max=40)])
    type = SelectField('النوع', choices=[(t, t) for t in PROMO_CODE_TYPES], validators=[DataRequired()])
    max_uses = IntegerField('عدد الاستخدامات', default=1, validators=[Optional(), NumberRange(min=1)])


class SubscriptionActionForm(AdminForm):
    action = SelectField('الإجراء', choices=[(a, a) for a in SUBSCRIPTION_ACTIONS], validators=[DataRequired()])


class NotificationForm(AdminForm):
    """Broadcast notification form"""
    message = TextAreaField('الرسالة', validators=[DataRequired()])
    target = SelectField('الفئة المستهدفة', choices=[(t, t) for t in NOTIFICATION_TARGETS],
                         default='all', validators=[Optional()])
