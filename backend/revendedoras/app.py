"""
Punto de entrada: crear app y ejecutar (desarrollo).
Producción: gunicorn -w 1 --threads 4 -b 0.0.0.0:5000 "revendedoras.app:create_app()"
Un solo worker: el scheduler y el lock de la sync del catálogo viven en el proceso.
"""
import os
from dotenv import load_dotenv

load_dotenv()

from revendedoras import create_app

app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)), debug=os.environ.get("FLASK_ENV") == "development")
