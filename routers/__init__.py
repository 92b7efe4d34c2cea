from .account_ui import router as account_ui_router
from .accounts_api import router as accounts_api_router
from .components_api import router as components_api_router
from .components_ui import router as components_ui_router
from .dashboard_ui import router as dashboard_ui_router
from .lending_api import router as lending_api_router
from .lending_ui import router as lending_ui_router
from .logs_ui import router as logs_ui_router
from .masters_ui import router as masters_ui_router

ALL_ROUTERS = (
    components_api_router,
    lending_api_router,
    accounts_api_router,
    dashboard_ui_router,
    components_ui_router,
    masters_ui_router,
    lending_ui_router,
    logs_ui_router,
    account_ui_router,
)
