from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from schedule_hub.api.routes import activity, health, notifications, schedules
from schedule_hub.core.config import get_settings
from schedule_hub.core.exceptions import AppError

settings = get_settings()


async def app_error_handler(request: Request, exc: AppError):
    content = {"message": exc.message, "details": exc.details}
    title = getattr(exc, "title", None)
    if title:
        content["title"] = title
        content["level"] = exc.level
    return JSONResponse(status_code=exc.status_code, content=content)


app = FastAPI(title=settings.project_name)
app.add_exception_handler(AppError, app_error_handler)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(schedules.router, prefix=settings.api_prefix, tags=["schedules"])
app.include_router(notifications.router, prefix=settings.api_prefix, tags=["notifications"])
app.include_router(activity.router, prefix=settings.api_prefix, tags=["activity"])
