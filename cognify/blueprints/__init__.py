from .upload import upload_bp
from .study import study_bp
from .payments import payments_bp

__all__ = ['upload_bp', 'study_bp', 'payments_bp']
