from dotenv import load_dotenv

load_dotenv()

import uvicorn

from vault import Config

from portal.app import create_app


def main():
    """Serve the portal on the configured host and port."""
    uvicorn.run(
        create_app(),
        host=Config.get("HOST", "0.0.0.0"),
        port=int(Config.get("PORT", 3000)),
        log_level=str(Config.get("LOG_LEVEL", "INFO")).lower(),
    )


if __name__ == "__main__":
    main()
