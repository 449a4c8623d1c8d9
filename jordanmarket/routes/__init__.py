"""
Routes package - contains all Flask blueprints
"""
from .auth_routes import bp as auth_bp
from .catalog_routes import bp as catalog_bp
from .cart_routes import bp as cart_bp
from .orders_routes import bp as orders_bp
from .seller_routes import bp as seller_bp
from .driver_routes import bp as driver_bp
from .admin_routes import bp as admin_bp
from .wallet_routes import bp as wallet_bp
from .notification_routes import bp as notification_bp
from .dashboard_routes import bp as dashboard_bp
from .config_routes import bp as config_bp
from . import health

__all__ = [
    'auth_bp', 'catalog_bp', 'cart_bp', 'orders_bp', 'seller_bp', 'driver_bp', 'admin_bp',
    'wallet_bp', 'notification_bp', 'dashboard_bp', 'config_bp', 'health',
]
