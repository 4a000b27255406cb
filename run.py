import uvicorn

from fabric_server.config import Settings
from fabric_server.main import create_app

settings = Settings.from_env()
app = create_app(settings)

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)
