import logging
import os

import uvicorn

if __name__ == "__main__":
    logging.basicConfig(
        level=os.environ.get("ANIMALITO_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("Starting Animalito API Server...")
    print("Docs available at: http://localhost:8000/docs")

    uvicorn.run(
        "service.api:app",
        host=os.environ.get("ANIMALITO_HOST", "0.0.0.0"),
        port=int(os.environ.get("ANIMALITO_PORT", "8000")),
        reload=False,
    )
