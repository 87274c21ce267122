from distroctl.cli import main

main()
