from fastapi.responses import JSONResponse

NO_CACHE_HEADERS = {"Cache-Control": "no-cache, no-store, must-revalidate"}


def error_response(*, status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
    )


def not_found_response() -> JSONResponse:
    return JSONResponse(status_code=404, content={"message": "Not found"})


def internal_error_response() -> JSONResponse:
    # Produced outside the middleware stack, so headers are set here.
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "An error occurred"},
        headers=NO_CACHE_HEADERS,
    )
