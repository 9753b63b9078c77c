# Validators Package
