from devicefarm.mcp_server import main

main()
