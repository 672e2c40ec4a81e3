"""
FastAPI Backend for Bank Statement Parser
RESTful API endpoints for extracting transactions from bank statements
"""

from fastapi import FastAPI, File, UploadFile, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
import logging

from statement_parser.config import config
from statement_parser.loaders.pdf_loader import PDFLoadError, load_pdf_bytes
from statement_parser.logging_config import setup_logging
from statement_parser.main import StatementProcessor

setup_logging()
logger = logging.getLogger(__name__)

RAW_PREVIEW_CHARS = 500

# Initialize FastAPI app
app = FastAPI(
    title="Bank Statement Parser API",
    description="Extract transactions and duplicate reports from bank statement PDFs",
    version=config.VERSION
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Stateless, shared across requests
processor = StatementProcessor()


class StatementTextRequest(BaseModel):
    """Raw statement text, for callers that decode documents themselves."""
    text: str = Field(..., description="Statement text; form feeds separate pages")
    page_count: Optional[int] = Field(None, ge=0, description="Page count reported by the decoder")


def _debug_preview(raw_text: str) -> dict:
    preview = raw_text if len(raw_text) <= RAW_PREVIEW_CHARS else raw_text[:RAW_PREVIEW_CHARS] + "..."
    return {
        "raw_text_length": len(raw_text),
        "raw_text_preview": preview,
    }


@app.get("/")
async def root():
    """Root endpoint - API information"""
    return {
        "message": config.APP_NAME,
        "version": config.VERSION,
        "endpoints": {
            "POST /api/transactions": "Upload a PDF statement and extract transactions",
            "POST /api/transactions/text": "Extract transactions from raw statement text",
            "GET /health": "Health check"
        },
        "settings": config.to_dict()
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat()
    }


@app.get("/api/transactions")
async def transactions_usage():
    """Usage hint for the upload endpoint"""
    return {
        "message": "Use POST to upload a PDF file",
        "endpoint": "/api/transactions",
        "method": "POST",
        "content_type": "multipart/form-data"
    }


@app.post("/api/transactions")
async def upload_statement(
    file: UploadFile = File(..., description="PDF bank statement"),
    debug: bool = Query(False, description="Include extracted text and parsing details")
):
    """
    Upload a PDF bank statement to extract transactions.

    - **file**: PDF file to upload
    - **debug**: Set to true to see extracted text and parsing details

    Returns the transactions in document order, each flagged as original or
    duplicate, plus the duplicate report and statement metadata.
    """
    content = await file.read()

    is_valid, error = config.validate_file(file.filename or "", len(content))
    if not is_valid:
        logger.warning(f"Rejected upload {file.filename}: {error}")
        raise HTTPException(status_code=400, detail=error)

    if file.content_type and "pdf" not in file.content_type.lower():
        raise HTTPException(status_code=400, detail="Only PDF allowed.")

    try:
        document = load_pdf_bytes(content, source=file.filename)
    except PDFLoadError as e:
        logger.warning(f"Could not read {file.filename}: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    try:
        result = processor.process_text(document.text, document.page_count)
    except Exception as e:
        logger.error(f"Error processing {file.filename}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")

    logger.info(
        f"Extracted {len(result.transactions)} transactions from {file.filename} "
        f"({result.duplicate_report.duplicate_count} duplicates)"
    )

    response = result.to_dict(debug=debug)
    if debug:
        response["debug"].update(_debug_preview(document.text))
    return response


@app.post("/api/transactions/text")
async def parse_statement_text(request: StatementTextRequest, debug: bool = Query(False)):
    """
    Extract transactions from statement text that was decoded elsewhere.

    - **text**: Raw statement text
    - **page_count**: Optional page count
    """
    try:
        result = processor.process_text(request.text, request.page_count)
    except Exception as e:
        logger.error(f"Error processing statement text: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")

    response = result.to_dict(debug=debug)
    if debug:
        response["debug"].update(_debug_preview(request.text))
    return response


def run():
    """Serve the API with uvicorn."""
    import uvicorn
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)


if __name__ == "__main__":
    run()
