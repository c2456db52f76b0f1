from mview.main import main

main()
