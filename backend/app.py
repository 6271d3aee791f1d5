import logging
from dotenv import load_dotenv

# Carrega variáveis de ambiente (.env)
load_dotenv()

from medsys import create_app, db

logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = create_app()


if __name__ == '__main__':
    # Cria as tabelas que ainda não existem (em produção use flask db upgrade)
    with app.app_context():
        db.create_all()
        app.logger.info("Tabelas verificadas")

    app.run(debug=app.config.get("DEBUG", False))
