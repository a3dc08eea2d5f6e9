# Valley Weather forecast correction service
