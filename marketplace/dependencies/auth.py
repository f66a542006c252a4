from fastapi import Header, HTTPException, Query, WebSocketException, status
from supabase import AsyncClientOptions, ClientOptions, acreate_client, create_client
import os
import time
import logging

logger = logging.getLogger(__name__)

def supabase_settings():
    supabase_url = os.getenv("SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_KEY")

    if not supabase_url or not supabase_key:
        logger.error("Supabase URL or Key not found in environment variables")
        raise HTTPException(status_code=500, detail="Server configuration error")
    return supabase_url, supabase_key

def bearer_token(authorization: str) -> str:
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid token format")
    return authorization.split(" ")[1]

def supabase_client():
    """Anonymous client, for public reads and the sign-in / sign-up calls."""
    supabase_url, supabase_key = supabase_settings()
    return create_client(supabase_url, supabase_key)

async def user_supabase_client(authorization: str = Header(...)):
    token = bearer_token(authorization)
    supabase_url, supabase_key = supabase_settings()

    try:
        start_time = time.time()
        logger.info("Creating Supabase client")
        # Requests carry the user's JWT so row-level security applies to them
        supabase = create_client(
            supabase_url,
            supabase_key,
            options=ClientOptions(headers={"Authorization": f"Bearer {token}"}),
        )

        logger.info("Validating token with Supabase")
        user_res = supabase.auth.get_user(token)
        end_time = time.time()
        logger.info(f"Token validation completed in {end_time - start_time:.2f} seconds")
    except Exception as e:
        logger.error(f"Supabase token validation error: {str(e)}")
        if "timed out" in str(e).lower():
            raise HTTPException(
                status_code=504,
                detail="Connection to authentication service timed out. Please try again later."
            )
        raise HTTPException(status_code=401, detail=f"Authentication error: {str(e)}")

    if not user_res or not user_res.user:
        logger.warning("User not found after successful token validation")
        raise HTTPException(status_code=401, detail="User not found")

    logger.info(f"Successfully authenticated user: {user_res.user.id}")
    return {
        "supabase": supabase,
        "user_id": user_res.user.id,
        "user": user_res.user,
        "access_token": token,
    }

async def websocket_supabase_client(token: str = Query(...)):
    """
    Async client for realtime subscriptions. Browsers cannot set headers on a
    WebSocket, so the access token comes in the query string.
    """
    supabase_url = os.getenv("SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_KEY")
    if not supabase_url or not supabase_key:
        logger.error("Supabase URL or Key not found in environment variables")
        raise WebSocketException(code=status.WS_1011_INTERNAL_ERROR, reason="Server configuration error")

    try:
        supabase = await acreate_client(
            supabase_url,
            supabase_key,
            options=AsyncClientOptions(headers={"Authorization": f"Bearer {token}"}),
        )
        user_res = await supabase.auth.get_user(token)
        await supabase.realtime.set_auth(token)
    except Exception as e:
        logger.error(f"Supabase token validation error: {str(e)}")
        raise WebSocketException(code=status.WS_1008_POLICY_VIOLATION, reason="Authentication error")

    if not user_res or not user_res.user:
        raise WebSocketException(code=status.WS_1008_POLICY_VIOLATION, reason="User not found")

    logger.info(f"Successfully authenticated websocket user: {user_res.user.id}")
    return {
        "supabase": supabase,
        "user_id": user_res.user.id,
    }
