# Models package
from .owner import GymOwner
from .member import Member, MemberPayment
from .promo_code import PromoCode
from .notification import Notification
