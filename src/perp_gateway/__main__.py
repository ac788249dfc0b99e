from perp_gateway.cli import main

main()
