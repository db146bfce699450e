from app.laporfik import create_app

app = create_app()
