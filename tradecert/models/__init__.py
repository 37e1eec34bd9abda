# tradecert/models/__init__.py
# Loads every module so the tables register on Base.metadata.
import tradecert.models.user        # noqa: F401
import tradecert.models.course      # noqa: F401
import tradecert.models.trader      # noqa: F401
import tradecert.models.enrollment  # noqa: F401
import tradecert.models.payment     # noqa: F401

__all__: list[str] = []
