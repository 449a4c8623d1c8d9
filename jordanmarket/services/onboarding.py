"""
Onboarding and Verification
Buyers opt into selling or driving; an admin verifies them before they can transact
"""
from datetime import datetime

from jordanmarket.capabilities import ensure_profile, refresh_role, BUYER, SELLER, DRIVER, ADMIN
from jordanmarket.errors import success, failure, INVALID_INPUT, INVALID_STATE, NOT_FOUND, NOT_VERIFIED
from jordanmarket.logger_config import app_logger, log_workflow_event
from jordanmarket.models import db, User, Profile, SellerProfile, DriverProfile
from jordanmarket.services.notifications import notify_localized


def update_profile(user_id, data):
    profile = ensure_profile(user_id)
    if 'full_name' in data:
        profile.full_name = data['full_name']
    if 'phone' in data:
        profile.phone = data['phone']
    if 'locale' in data:
        profile.preferred_locale = data['locale']
    db.session.commit()
    return success(profile=profile)


def _reopen(application):
    if application.rejected_at is not None:
        application.rejected_at = None
        application.rejected_by = None
        application.rejection_reason = None


def activate_seller(user_id, store_name, store_description=None, address=None):
    """
    Grant the seller capability and create (or update) the store profile

    A store stays unverified until an admin approves it; editing an
    unverified application keeps it pending, and applying again after a
    rejection puts it back in the queue.
    """
    profile = ensure_profile(user_id)
    seller = profile.seller_profile
    if seller is None:
        seller = SellerProfile(user_id=user_id, store_name=store_name)
        db.session.add(seller)
    seller.store_name = store_name
    seller.store_description = store_description
    seller.address = address
    _reopen(seller)

    profile.is_seller = True
    refresh_role(profile)
    db.session.commit()

    app_logger.info(f"User {user_id} applied as seller ({store_name})")
    return success(seller_profile=seller)


def activate_driver(user_id, vehicle_type, vehicle_plate=None):
    profile = ensure_profile(user_id)
    driver = profile.driver_profile
    if driver is None:
        driver = DriverProfile(user_id=user_id, vehicle_type=vehicle_type)
        db.session.add(driver)
    driver.vehicle_type = vehicle_type
    driver.vehicle_plate = vehicle_plate
    _reopen(driver)

    profile.is_driver = True
    refresh_role(profile)
    db.session.commit()

    app_logger.info(f"User {user_id} applied as driver ({vehicle_type})")
    return success(driver_profile=driver)


def set_driver_active(user_id, is_active):
    """Go online/offline; only verified drivers may go online"""
    driver = db.session.get(DriverProfile, user_id)
    if not driver:
        return failure(NOT_FOUND)
    if is_active and not driver.is_verified:
        return failure(NOT_VERIFIED)

    driver.is_active = bool(is_active)
    db.session.commit()
    return success(driver_profile=driver)


def verify_seller(user_id, admin_id):
    seller = db.session.get(SellerProfile, user_id)
    if not seller:
        return failure(NOT_FOUND)
    if seller.is_verified:
        return success(seller_profile=seller)
    if seller.rejected_at is not None:
        return failure(INVALID_STATE, current_status=seller.status)

    seller.is_verified = True
    seller.verified_at = datetime.utcnow()
    seller.verified_by = admin_id
    refresh_role(seller.profile)
    db.session.commit()

    notify_localized(user_id, 'verification', 'seller_verified', reference_type='seller', reference_id=user_id)
    return success(seller_profile=seller)


def verify_driver(user_id, admin_id):
    driver = db.session.get(DriverProfile, user_id)
    if not driver:
        return failure(NOT_FOUND)
    if driver.is_verified:
        return success(driver_profile=driver)
    if driver.rejected_at is not None:
        return failure(INVALID_STATE, current_status=driver.status)

    driver.is_verified = True
    driver.verified_at = datetime.utcnow()
    driver.verified_by = admin_id
    refresh_role(driver.profile)
    db.session.commit()

    notify_localized(user_id, 'verification', 'driver_verified', reference_type='driver', reference_id=user_id)
    return success(driver_profile=driver)


def _reject(model, user_id, admin_id, reason):
    """Conditional pending -> rejected; returns the number of rows changed"""
    return model.query.filter(
        model.user_id == user_id,
        model.is_verified.is_(False),
        model.rejected_at.is_(None),
    ).update(
        {
            model.rejected_at: datetime.utcnow(),
            model.rejected_by: admin_id,
            model.rejection_reason: reason,
        },
        synchronize_session=False
    )


def reject_seller(user_id, admin_id, reason=None):
    """
    Decline a pending store application

    Only a pending application can be rejected; a verified or already
    rejected one answers INVALID_STATE. The applicant may apply again.
    """
    if not db.session.get(SellerProfile, user_id):
        return failure(NOT_FOUND)

    if _reject(SellerProfile, user_id, admin_id, reason) != 1:
        db.session.rollback()
        return failure(INVALID_STATE, current_status=db.session.get(SellerProfile, user_id).status)
    db.session.commit()

    seller = db.session.get(SellerProfile, user_id)
    log_workflow_event('seller', user_id, 'rejected', actor_id=admin_id)
    notify_localized(
        user_id, 'verification', 'seller_rejected',
        reference_type='seller', reference_id=user_id, reason=reason or '',
    )
    return success(seller_profile=seller)


def reject_driver(user_id, admin_id, reason=None):
    if not db.session.get(DriverProfile, user_id):
        return failure(NOT_FOUND)

    if _reject(DriverProfile, user_id, admin_id, reason) != 1:
        db.session.rollback()
        return failure(INVALID_STATE, current_status=db.session.get(DriverProfile, user_id).status)
    DriverProfile.query.filter_by(user_id=user_id).update(
        {DriverProfile.is_active: False}, synchronize_session=False
    )
    db.session.commit()

    driver = db.session.get(DriverProfile, user_id)
    log_workflow_event('driver', user_id, 'rejected', actor_id=admin_id)
    notify_localized(
        user_id, 'verification', 'driver_rejected',
        reference_type='driver', reference_id=user_id, reason=reason or '',
    )
    return success(driver_profile=driver)


def pending_sellers():
    return (
        SellerProfile.query
        .filter(SellerProfile.is_verified.is_(False), SellerProfile.rejected_at.is_(None))
        .order_by(SellerProfile.created_at.asc())
        .all()
    )


def pending_drivers():
    return (
        DriverProfile.query
        .filter(DriverProfile.is_verified.is_(False), DriverProfile.rejected_at.is_(None))
        .order_by(DriverProfile.created_at.asc())
        .all()
    )


USER_CAPABILITY_FILTERS = {
    BUYER: Profile.is_buyer,
    SELLER: Profile.is_seller,
    DRIVER: Profile.is_driver,
    ADMIN: Profile.is_admin,
}


def list_users(capability=None, search=None, limit=200):
    """
    Profiles for the admin user list, newest first

    `capability` narrows to buyers/sellers/drivers/admins; `search` matches
    name, phone or email.
    """
    query = Profile.query.join(User, User.id == Profile.id)
    if capability:
        column = USER_CAPABILITY_FILTERS.get(capability)
        if column is None:
            return failure(INVALID_INPUT, details={'capability': [f"Must be one of {', '.join(USER_CAPABILITY_FILTERS)}"]})
        query = query.filter(db.or_(column.is_(True), Profile.role == capability))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Profile.full_name.ilike(pattern),
            Profile.phone.ilike(pattern),
            User.email.ilike(pattern),
        ))
    users = query.order_by(Profile.created_at.desc(), Profile.id.desc()).limit(limit).all()
    return success(users=users)
