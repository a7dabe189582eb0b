from filmframe.cli import main

main()
