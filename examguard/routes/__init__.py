# Routes Package
