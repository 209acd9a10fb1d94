"""
Networking Infrastructure

- http: transport contract, I/O reactor and the aiohttp transport
"""
