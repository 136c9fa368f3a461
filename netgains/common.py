import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from firebase_admin import initialize_app, auth

from netgains.config import settings
from netgains.exceptions import NetGainsError

logger = logging.getLogger(__name__)

# Initialize Firebase
firebase_app = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    global firebase_app
    if settings.environment == "production":
        try:
            from firebase_admin import credentials as fb_credentials

            cred = fb_credentials.ApplicationDefault()
            firebase_app = initialize_app(
                credential=cred,
                options={"projectId": settings.firebase_project_id}
            )
            logger.info("Firebase initialized successfully")
        except Exception:
            logger.exception("Error initializing Firebase")
            raise
    else:
        logger.info("Running in development mode - skipping Firebase initialization")

    yield

    # Shutdown
    if firebase_app:
        from firebase_admin import delete_app

        delete_app(firebase_app)


app = FastAPI(title="Net Gains API", lifespan=lifespan)
security = HTTPBearer(auto_error=False)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NetGainsError)
async def netgains_error_handler(request: Request, exc: NetGainsError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# Dependency to get current user from token
async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    if settings.environment != "production":
        logger.info("Development mode - skipping token verification")
        return {
            "uid": "dev-user-0001",
            "email": "dev@example.com",
            "name": "Development User",
            "phone_number": "+15550000001",
        }

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not authenticated"
        )

    token = credentials.credentials
    logger.info(f"Verifying token: {token[:10]}... (truncated for security)")
    try:
        decoded_token = auth.verify_id_token(token)
        logger.info(f"Successfully decoded token with UID: {decoded_token.get('uid')}")
        return decoded_token
    except Exception as e:
        logger.exception("Error verifying Firebase ID token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication token: {str(e)}"
        )
