"""
Domain errors.

Every error carries the HTTP status the JSON layer answers with and a
user-facing message (Arabic, like the rest of the interface).
"""


class GymPassError(Exception):
    """Base class for all domain errors"""
    status_code = 500
    default_message = 'حدث خطأ غير متوقع'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {'success': False, 'error': self.message}


class NotFound(GymPassError):
    status_code = 404
    default_message = 'العنصر المطلوب غير موجود'


class MemberNotFound(NotFound):
    default_message = 'لم يتم العثور على العضو.'


class OwnerNotFound(NotFound):
    default_message = 'لم يتم العثور على بيانات مالك النادي.'


class PromoCodeNotFound(NotFound):
    default_message = 'رمز التفعيل غير صالح أو منتهي الصلاحية.'


class Exhausted(GymPassError):
    status_code = 409
    default_message = 'تم استنفاد هذا العنصر'


class PromoCodeExhausted(Exhausted):
    default_message = 'هذا الرمز تم استخدامه بالكامل أو غير نشط.'


class Unauthorized(GymPassError):
    """Cross-tenant access. Always aborts the whole read."""
    status_code = 403
    default_message = 'ليس لديك صلاحية لعرض هذا العضو.'


class ValidationError(GymPassError):
    status_code = 400
    default_message = 'البيانات غير صالحة'

    def __init__(self, message=None, errors=None):
        super().__init__(message)
        self.errors = errors or {}

    def to_dict(self):
        data = super().to_dict()
        if self.errors:
            data['errors'] = self.errors
        return data


class OutstandingDebt(ValidationError):
    default_message = 'لا يمكن تجديد الاشتراك قبل تسديد الديون المتبقية.'


class GenerationFailed(GymPassError):
    status_code = 502
    default_message = 'فشل إنشاء النظام الغذائي. يرجى المحاولة مرة أخرى.'


class SubscriptionExpired(GymPassError):
    status_code = 401
    default_message = 'انتهى اشتراكك. يرجى تجديد الاشتراك للمتابعة.'
