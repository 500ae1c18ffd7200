from .auth import auth_bp
from .posts import posts_bp
from .usage import usage_bp
from .records import records_bp
from .storage import storage_bp
from .payments import payments_bp
from .pages import pages_bp

__all__ = ['auth_bp', 'posts_bp', 'usage_bp', 'records_bp', 'storage_bp', 'payments_bp', 'pages_bp']
