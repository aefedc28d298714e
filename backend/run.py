import os

from whoowes import create_app

app = create_app()

if __name__ == "__main__":
    port = int(os.getenv("PORT", "3000"))
    app.run(host='0.0.0.0', port=port, debug=app.config.get("DEBUG", False), threaded=True)
