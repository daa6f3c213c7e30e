"""Signup, login, password recovery and user administration routes."""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, status

from expense_tracker.api.dependencies import get_components
from expense_tracker.api.responses import error_response, ok
from expense_tracker.orchestrator import AppComponents

router = APIRouter(tags=["users"])


@router.post("/user")
async def signup(
    payload: Any = Body(default=None),
    components: AppComponents = Depends(get_components),
):
    try:
        user = await components.auth.signup(payload)
    except Exception as e:
        return await error_response(e, "Error creating user", audit_logger=components.audit_logger)
    return ok("User created successfully", user, status.HTTP_201_CREATED)


@router.post("/user/login")
async def login(
    payload: Any = Body(default=None),
    components: AppComponents = Depends(get_components),
):
    try:
        identity = await components.auth.login(payload)
    except Exception as e:
        return await error_response(e, "An error occurred during login. Please try again.", audit_logger=components.audit_logger)
    return ok("Login successful", identity, status.HTTP_201_CREATED)


@router.post("/user/forgotpassword")
async def forgot_password(
    request: Request,
    payload: Any = Body(default=None),
    components: AppComponents = Depends(get_components),
):
    try:
        result = await components.auth.forgot_password(
            payload, origin=request.headers.get("origin")
        )
    except Exception as e:
        return await error_response(e, "Something went wrong while processing your request.", audit_logger=components.audit_logger)
    return ok(
        "Reset password request processed. If the email doesn't arrive, "
        "please try again or contact support.",
        result,
    )


@router.post("/user/resetpassword")
async def reset_password(
    payload: Any = Body(default=None),
    components: AppComponents = Depends(get_components),
):
    try:
        await components.auth.reset_password(payload)
    except Exception as e:
        return await error_response(e, "Something went wrong during password reset.", audit_logger=components.audit_logger)
    return ok("Password updated successfully.")


@router.post("/adduser")
async def add_user(
    payload: Any = Body(default=None),
    components: AppComponents = Depends(get_components),
):
    try:
        user = await components.users.create(payload)
    except Exception as e:
        return await error_response(e, "Error adding user", audit_logger=components.audit_logger)
    return ok("User added successfully", user, status.HTTP_201_CREATED)


@router.get("/users")
async def list_users(components: AppComponents = Depends(get_components)):
    try:
        users = await components.users.list_users()
    except Exception as e:
        return await error_response(e, "Error fetching users", audit_logger=components.audit_logger)
    return ok("Users fetched successfully", users)


@router.get("/user/{user_id}")
async def get_user(user_id: str, components: AppComponents = Depends(get_components)):
    try:
        user = await components.users.get_user(user_id)
    except Exception as e:
        return await error_response(e, "Error fetching user", audit_logger=components.audit_logger)
    return ok("User fetched successfully", user)


@router.put("/user/{user_id}")
async def update_user(
    user_id: str,
    payload: Any = Body(default=None),
    components: AppComponents = Depends(get_components),
):
    try:
        user = await components.users.update_user(user_id, payload)
    except Exception as e:
        return await error_response(e, "Error updating user profile", audit_logger=components.audit_logger)
    return ok("User profile updated successfully", user)


@router.delete("/user/{user_id}")
async def delete_user(user_id: str, components: AppComponents = Depends(get_components)):
    try:
        user = await components.users.delete_user(user_id)
    except Exception as e:
        return await error_response(e, "Error deleting user", audit_logger=components.audit_logger)
    return ok("User deleted successfully", user)
