"""
Subscription and health calculators.

Pure functions shared by the models, the services and the admin surface.
Status is derived here and nowhere else.
"""
from calendar import monthrange
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from gympass.errors import ValidationError

STATUS_ACTIVE = 'Active'
STATUS_EXPIRED = 'Expired'

PERIODS = ('Daily', 'Weekly', 'Monthly')
CLASSES = ('Iron', 'Fitness')
GENDERS = ('male', 'female')

# Promo / owner subscription types and the window each one opens
OWNER_SUBSCRIPTION_DAYS = {'gift': 14}
OWNER_SUBSCRIPTION_MONTHS = {'monthly': 1, '6-months': 6, 'yearly': 12}

# Biometric bounds, shared with the member forms
MIN_WEIGHT_KG = 30
MAX_WEIGHT_KG = 300
MIN_HEIGHT_CM = 100
MAX_HEIGHT_CM = 250
MIN_AGE = 10
MAX_AGE = 100


def add_months(start, months):
    """
    Add calendar months, clamping the day to the target month's length
    (Jan 31 + 1 month => Feb 28/29). Works for both date and datetime.
    """
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    day = min(start.day, monthrange(y, m)[1])
    return start.replace(year=y, month=m, day=day)


def compute_end_date(start, period):
    """End of a member subscription that starts at `start`"""
    period = normalize_period(period)
    if period == 'Daily':
        return start + timedelta(days=1)
    if period == 'Weekly':
        return start + timedelta(days=7)
    return add_months(start, 1)


def compute_owner_end_date(start, subscription_type):
    """End of a gym owner's window opened by a promo code of `subscription_type`"""
    if subscription_type in OWNER_SUBSCRIPTION_DAYS:
        return start + timedelta(days=OWNER_SUBSCRIPTION_DAYS[subscription_type])
    if subscription_type in OWNER_SUBSCRIPTION_MONTHS:
        return add_months(start, OWNER_SUBSCRIPTION_MONTHS[subscription_type])
    raise ValidationError(f'نوع اشتراك غير معروف: {subscription_type}')


def derive_status(now, end_date):
    """Expired strictly after the end date; the end instant itself is still Active"""
    return STATUS_EXPIRED if now > end_date else STATUS_ACTIVE


def compute_debt(price, amount_paid):
    """Outstanding balance. Not clamped; payments are clamped when applied."""
    return _to_decimal(price) - _to_decimal(amount_paid)


def compute_bmr(gender, weight_kg, height_cm, age_years):
    """
    Basal Metabolic Rate using the Mifflin-St Jeor Equation
    Men: BMR = 10 × weight(kg) + 6.25 × height(cm) - 5 × age + 5
    Women: BMR = 10 × weight(kg) + 6.25 × height(cm) - 5 × age - 161
    Rounded half up to a whole kcal/day.
    """
    if gender not in GENDERS:
        raise ValidationError('الجنس يجب أن يكون ذكر أو أنثى')
    if not MIN_WEIGHT_KG <= weight_kg <= MAX_WEIGHT_KG:
        raise ValidationError(f'الوزن يجب أن يكون بين {MIN_WEIGHT_KG} و {MAX_WEIGHT_KG} كجم')
    if not MIN_HEIGHT_CM <= height_cm <= MAX_HEIGHT_CM:
        raise ValidationError(f'الطول يجب أن يكون بين {MIN_HEIGHT_CM} و {MAX_HEIGHT_CM} سم')
    if not MIN_AGE <= age_years <= MAX_AGE:
        raise ValidationError(f'العمر يجب أن يكون بين {MIN_AGE} و {MAX_AGE} سنة')

    base = (10 * _to_decimal(weight_kg)) + (Decimal('6.25') * _to_decimal(height_cm)) \
        - (5 * _to_decimal(age_years))
    bmr = base + 5 if gender == 'male' else base - 161
    return int(bmr.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def normalize_period(period):
    value = (period or '').strip().capitalize()
    if value not in PERIODS:
        raise ValidationError(f'مدة الاشتراك غير صالحة: {period}')
    return value


def normalize_classes(classes):
    """Accept 'Iron', ['Iron', 'Fitness'] or 'Iron & Fitness'; keep canonical order"""
    if isinstance(classes, str):
        classes = classes.split('&')
    selected = {c.strip().capitalize() for c in classes if c and c.strip()}
    if not selected or not selected <= set(CLASSES):
        raise ValidationError('يجب اختيار حديد أو لياقة أو كلاهما')
    return [c for c in CLASSES if c in selected]


def format_subscription_type(period, classes):
    """'Monthly', ['Iron', 'Fitness'] => 'Monthly Iron & Fitness'"""
    return f"{normalize_period(period)} {' & '.join(normalize_classes(classes))}"


def parse_subscription_type(value):
    """'Monthly Iron & Fitness' => ('Monthly', ['Iron', 'Fitness'])"""
    if not value or ' ' not in value.strip():
        raise ValidationError(f'نوع اشتراك غير صالح: {value}')
    period, classes = value.strip().split(' ', 1)
    return normalize_period(period), normalize_classes(classes)


def compute_subscription_price(pricing, period, classes):
    """
    Price of a member subscription from the owner's pricing table.
    `pricing` maps keys like 'monthlyIron' to prices; selecting both classes
    pays for both.
    """
    period = normalize_period(period).lower()
    total = Decimal('0')
    for cls in normalize_classes(classes):
        total += _to_decimal(pricing.get(f'{period}{cls}') or 0)
    return total


def _to_decimal(value):
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value or 0))
