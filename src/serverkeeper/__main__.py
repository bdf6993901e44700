from serverkeeper.cli import main

main()
