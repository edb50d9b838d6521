import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import configure_logging
from errors import ResourceConflictError, RentalError
from persistence.db import init_db

from . import admin, customer, public

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # initialize DB (creates tables)
    init_db()
    yield


app = FastAPI(title="Rental Desk API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RentalError)
async def rental_error_handler(request: Request, exc: RentalError):
    content = {"detail": exc.message, "error": type(exc).__name__}
    if isinstance(exc, ResourceConflictError):
        content.update(resource=exc.resource, resource_id=exc.resource_id, booking_id=exc.booking_id)
    return JSONResponse(status_code=exc.status_code, content=content)


@app.get("/")
def read_root():
    return {"message": "Rental Desk backend is running"}


app.include_router(public.router)
app.include_router(public.functions)
app.include_router(customer.router)
app.include_router(admin.router)


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
