from src.veto.cli import main

main()
