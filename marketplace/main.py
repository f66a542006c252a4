from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError
from storage3.utils import StorageException
from marketplace.routes import auth, conversations, listings, preferences, profiles, ratings
from marketplace.services.errors import NO_ROWS, MarketplaceError
from dotenv import load_dotenv
import httpx
import logging
import os

load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    redirect_slashes=False,
    title="UQAMarketplace API",
    description="Listings, messaging and ratings for the student marketplace",
    version="1.0.0",
    openapi_tags=[
        {
            "name": "Conversations",
            "description": "Buyer/seller conversations about a listing, with live message feed",
        },
    ],
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[os.getenv("FRONTEND_URL", "http://localhost:3000")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(profiles.router, prefix="/profiles", tags=["Profiles"])
app.include_router(listings.router, prefix="/listings", tags=["Listings"])
app.include_router(conversations.router, prefix="/conversations", tags=["Conversations"])
app.include_router(ratings.router, prefix="/ratings", tags=["Ratings"])
app.include_router(preferences.router, prefix="/preferences", tags=["Preferences"])

# Map service and Supabase errors to HTTP responses
@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

@app.exception_handler(APIError)
async def postgrest_error_handler(request: Request, exc: APIError):
    if exc.code == NO_ROWS:
        return JSONResponse(status_code=404, content={"detail": "Not found"})
    logger.error(f"Supabase query error on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=500, content={"detail": exc.message or "Database error"})

@app.exception_handler(StorageException)
async def storage_error_handler(request: Request, exc: StorageException):
    logger.error(f"Supabase storage error on {request.url.path}: {str(exc)}")
    return JSONResponse(status_code=502, content={"detail": "File storage error"})

@app.exception_handler(httpx.HTTPError)
async def transport_error_handler(request: Request, exc: httpx.HTTPError):
    logger.error(f"Could not reach Supabase on {request.url.path}: {str(exc)}")
    return JSONResponse(status_code=502, content={"detail": "Upstream service unavailable"})
