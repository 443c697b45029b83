from fuelrecon import create_app

app = create_app()
