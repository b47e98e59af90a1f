from animaid import create_app

app = create_app()
