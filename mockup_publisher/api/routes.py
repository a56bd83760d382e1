"""
FastAPI routes for the mockup listing publisher.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from mockup_publisher.dependencies import (
    get_account_service,
    get_app_settings,
    get_content_generator,
    get_current_user,
    get_listing_service,
    get_optional_user,
    get_provider_client_factory,
    get_publish_pipeline,
    get_session_signer,
    get_sqlite_store,
    get_template_service,
)
from mockup_publisher.dependencies.config import (
    frontend_redirect_url,
    session_cookie_options,
)
from mockup_publisher.dependencies.session import SESSION_COOKIE_NAME
from mockup_publisher.core.errors import ResourceNotFound
from mockup_publisher.models.listing import DriveFile, PublishMode, TemplateSection
from mockup_publisher.schemas import (
    AuthStatusResponse,
    GenerateContentRequest,
    GeneratedContentResponse,
    ListingResponse,
    MockupListResponse,
    OAuthCallbackPayload,
    PublishListingRequest,
    PublishListingResponse,
    StageOutcomeResponse,
    TemplateCreateRequest,
    TemplateUpdateRequest,
)
from mockup_publisher.services.artifact import ARTIFACT_FILENAME
from mockup_publisher.services.publish_pipeline import PublishRequest

router = APIRouter()
logger = logging.getLogger(__name__)

CurrentUser = Annotated[str, Depends(get_current_user)]


def _wants_redirect(request: Request, redirect: bool) -> bool:
    accept_header = request.headers.get("accept", "")
    return redirect or "text/html" in accept_header.lower()


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


# Authentication -------------------------------------------------------------


@router.get("/auth/google/authorize", status_code=HTTPStatus.OK)
async def start_google_oauth_flow(
    request: Request,
    accounts: Annotated[Any, Depends(get_account_service)],
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the Google consent screen.",
    ),
) -> Any:
    """Return (or redirect to) the Google consent URL."""
    authorization_url = accounts.google_authorization_url()
    if _wants_redirect(request, redirect):
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)
    return {"authorization_url": authorization_url}


@router.get("/auth/google/callback", status_code=HTTPStatus.OK)
async def handle_google_oauth_callback(
    request: Request,
    accounts: Annotated[Any, Depends(get_account_service)],
    signer: Annotated[Any, Depends(get_session_signer)],
    settings: Annotated[Any, Depends(get_app_settings)],
    code: str = Query(..., description="Authorization code returned by Google."),
    redirect: bool = Query(
        default=False,
        description="When true, redirect browser clients instead of returning JSON.",
    ),
) -> Response:
    """Complete Google sign-in, store tokens and start a session."""
    user = await accounts.complete_google_login(code)
    session_token = signer.issue(user.email)

    redirect_target = frontend_redirect_url(settings, "dashboard")
    if redirect_target and _wants_redirect(request, redirect):
        response: Response = RedirectResponse(
            url=redirect_target,
            status_code=HTTPStatus.TEMPORARY_REDIRECT,
        )
    else:
        response = JSONResponse(
            content={
                "status": "connected",
                "email": user.email,
                "session_token": session_token,
            }
        )
    response.set_cookie(SESSION_COOKIE_NAME, session_token, **session_cookie_options(settings))
    return response


@router.get("/auth/etsy/authorize", status_code=HTTPStatus.OK)
async def start_etsy_oauth_flow(
    request: Request,
    user: CurrentUser,
    accounts: Annotated[Any, Depends(get_account_service)],
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the Etsy consent screen.",
    ),
) -> Any:
    """Begin the Etsy PKCE flow for the signed-in user."""
    authorization = accounts.begin_etsy_connect(user)
    if _wants_redirect(request, redirect):
        return RedirectResponse(
            url=authorization.redirect_url, status_code=HTTPStatus.TEMPORARY_REDIRECT
        )
    return {
        "authorization_url": authorization.redirect_url,
        "state": authorization.state_token,
    }


@router.post("/auth/etsy/callback", status_code=HTTPStatus.OK)
async def handle_etsy_oauth_callback(
    payload: OAuthCallbackPayload,
    accounts: Annotated[Any, Depends(get_account_service)],
) -> dict:
    """Consume the state token, exchange the code and record the user's shop."""
    user = await accounts.complete_etsy_connect(payload.code, payload.state)
    return {
        "status": "connected",
        "email": user.email,
        "etsy_shop_id": user.etsy_shop_id,
    }


@router.get("/auth/etsy/callback", status_code=HTTPStatus.OK)
async def handle_etsy_oauth_callback_get(
    request: Request,
    accounts: Annotated[Any, Depends(get_account_service)],
    settings: Annotated[Any, Depends(get_app_settings)],
    state: str = Query(..., description="OAuth state token."),
    code: str = Query(..., description="Authorization code returned by Etsy."),
    redirect: bool = Query(
        default=False,
        description="When true, redirect browser clients instead of returning JSON.",
    ),
) -> Response:
    result = await handle_etsy_oauth_callback(
        payload=OAuthCallbackPayload(state=state, code=code),
        accounts=accounts,
    )

    redirect_target = frontend_redirect_url(settings, "dashboard?etsy=connected")
    if redirect_target and _wants_redirect(request, redirect):
        return RedirectResponse(
            url=redirect_target,
            status_code=HTTPStatus.TEMPORARY_REDIRECT,
        )
    return JSONResponse(content=result)


@router.get("/auth/status", response_model=AuthStatusResponse)
async def auth_status(
    user: Annotated[Optional[str], Depends(get_optional_user)],
    accounts: Annotated[Any, Depends(get_account_service)],
) -> AuthStatusResponse:
    if user is None:
        return AuthStatusResponse(authenticated=False)
    try:
        record = accounts.get_user(user)
    except ResourceNotFound:
        return AuthStatusResponse(authenticated=False)
    return AuthStatusResponse(
        authenticated=True,
        email=record.email,
        google_connected=record.google_connected,
        etsy_connected=record.etsy_connected,
        etsy_shop_id=record.etsy_shop_id,
    )


@router.post("/auth/logout", status_code=HTTPStatus.OK)
async def logout(
    response: Response,
    user: Annotated[Optional[str], Depends(get_optional_user)],
    signer: Annotated[Any, Depends(get_session_signer)],
    store: Annotated[Any, Depends(get_sqlite_store)],
) -> dict:
    """Clear the cookie and revoke every session token issued so far for the user."""
    if user is not None:
        store.revoke_sessions(user, signer.now())
        logger.info("Signed out %s", user)
    response.delete_cookie(SESSION_COOKIE_NAME)
    return {"status": "logged_out"}


# Mockups ----------------------------------------------------------------------


@router.get("/mockups", response_model=MockupListResponse)
async def list_mockups(
    user: CurrentUser,
    clients: Annotated[Any, Depends(get_provider_client_factory)],
    settings: Annotated[Any, Depends(get_app_settings)],
    folder_id: str | None = Query(
        default=None,
        description="Drive folder to browse; defaults to GOOGLE_DRIVE_FOLDER_ID.",
    ),
) -> MockupListResponse:
    files = await clients.drive(user).list_images(folder_id)
    return MockupListResponse(
        files=files, folder_id=folder_id or settings.google.drive_folder_id
    )


@router.get("/mockups/{file_id}", response_model=DriveFile)
async def get_mockup(
    file_id: str,
    user: CurrentUser,
    clients: Annotated[Any, Depends(get_provider_client_factory)],
) -> DriveFile:
    return await clients.drive(user).get_metadata(file_id)


# Listings ---------------------------------------------------------------------


@router.post("/listings/generate", response_model=GeneratedContentResponse)
async def generate_listing_content(
    payload: GenerateContentRequest,
    user: CurrentUser,
    clients: Annotated[Any, Depends(get_provider_client_factory)],
    generator: Annotated[Any, Depends(get_content_generator)],
) -> GeneratedContentResponse:
    """Draft listing copy from the first selected mockup."""
    content = await generator.generate_for_files(
        drive=clients.drive(user),
        owner=user,
        file_ids=payload.file_ids,
        sections=payload.sections,
    )
    return GeneratedContentResponse(
        title=content.title,
        description=content.description,
        tags=content.tags,
        category=content.category,
        analysis=content.analysis,
        generated_at=content.generated_at,
        defaults_used=content.defaults_used,
        file_count=len(payload.file_ids),
    )


@router.post(
    "/listings", response_model=PublishListingResponse, status_code=HTTPStatus.CREATED
)
async def publish_listing(
    payload: PublishListingRequest,
    user: CurrentUser,
    clients: Annotated[Any, Depends(get_provider_client_factory)],
    accounts: Annotated[Any, Depends(get_account_service)],
    pipeline: Annotated[Any, Depends(get_publish_pipeline)],
) -> PublishListingResponse:
    """Publish selected mockups as an Etsy draft or a standalone package."""
    marketplace = None
    shop_id = None
    if payload.mode is PublishMode.MARKETPLACE:
        shop_id = accounts.get_user(user).etsy_shop_id
        marketplace = clients.etsy(user)

    result = await pipeline.publish(
        user,
        PublishRequest(
            file_ids=payload.file_ids,
            title=payload.title,
            description=payload.description,
            price=payload.price,
            tags=payload.tags,
            mode=payload.mode,
            taxonomy_id=payload.taxonomy_id,
            sections=payload.sections,
        ),
        assets=clients.drive(user),
        marketplace=marketplace,
        shop_id=shop_id,
    )
    return PublishListingResponse(
        listing=ListingResponse.from_listing(result.listing),
        stages=[
            StageOutcomeResponse(
                stage=outcome.stage, status=outcome.status.value, detail=outcome.detail
            )
            for outcome in result.stages
        ],
        partial_failure=(
            result.partial_failure.to_dict() if result.partial_failure else None
        ),
    )


@router.get("/listings", response_model=list[ListingResponse])
async def list_listings(
    user: CurrentUser,
    listings: Annotated[Any, Depends(get_listing_service)],
) -> list[ListingResponse]:
    return [ListingResponse.from_listing(item) for item in listings.list_for_owner(user)]


@router.get("/listings/{listing_id}", response_model=ListingResponse)
async def get_listing(
    listing_id: int,
    user: CurrentUser,
    listings: Annotated[Any, Depends(get_listing_service)],
) -> ListingResponse:
    return ListingResponse.from_listing(listings.get(user, listing_id))


@router.get("/listings/{listing_id}/download")
async def download_listing_package(
    listing_id: int,
    user: CurrentUser,
    listings: Annotated[Any, Depends(get_listing_service)],
) -> Response:
    """Return the stored download-links PDF of a standalone listing."""
    content = listings.load_artifact(user, listing_id)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{ARTIFACT_FILENAME}"'},
    )


@router.post("/listings/{listing_id}/activate", response_model=ListingResponse)
async def activate_listing(
    listing_id: int,
    user: CurrentUser,
    clients: Annotated[Any, Depends(get_provider_client_factory)],
    accounts: Annotated[Any, Depends(get_account_service)],
    listings: Annotated[Any, Depends(get_listing_service)],
) -> ListingResponse:
    listing = await listings.activate(
        user,
        listing_id,
        etsy=clients.etsy(user),
        shop_id=accounts.get_user(user).etsy_shop_id,
    )
    return ListingResponse.from_listing(listing)


# Templates --------------------------------------------------------------------


@router.get("/templates", response_model=list[TemplateSection])
async def list_templates(
    user: CurrentUser,
    templates: Annotated[Any, Depends(get_template_service)],
) -> list[TemplateSection]:
    return templates.list_templates(user)


@router.post("/templates", response_model=TemplateSection, status_code=HTTPStatus.CREATED)
async def create_template(
    payload: TemplateCreateRequest,
    user: CurrentUser,
    templates: Annotated[Any, Depends(get_template_service)],
) -> TemplateSection:
    return templates.create(
        user,
        name=payload.name,
        content=payload.content,
        category=payload.category,
        is_default=payload.is_default,
    )


@router.put("/templates/{template_id}", response_model=TemplateSection)
async def update_template(
    template_id: int,
    payload: TemplateUpdateRequest,
    user: CurrentUser,
    templates: Annotated[Any, Depends(get_template_service)],
) -> TemplateSection:
    return templates.update(
        user,
        template_id,
        name=payload.name,
        content=payload.content,
        category=payload.category,
        is_default=payload.is_default,
    )


@router.delete("/templates/{template_id}", status_code=HTTPStatus.OK)
async def delete_template(
    template_id: int,
    user: CurrentUser,
    templates: Annotated[Any, Depends(get_template_service)],
) -> dict:
    templates.delete(user, template_id)
    return {"status": "deleted"}


__all__ = ["router"]
